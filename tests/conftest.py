"""Shared fixtures for building in-memory .docx packages."""

import io
import zipfile
from typing import Dict, Optional

import pytest

from docxstream.docx_parser.xmltree import NAMESPACES

W_NS = NAMESPACES["w"]
R_NS = NAMESPACES["r"]
PACKAGE_RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

DOCUMENT_NAMESPACES = " ".join(
    f'xmlns:{prefix}="{NAMESPACES[prefix]}"' for prefix in ("w", "r", "wp", "a", "pic", "mc")
)


def document_xml(body: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<w:document {DOCUMENT_NAMESPACES}><w:body>{body}</w:body></w:document>'


def styles_xml(content: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<w:styles xmlns:w="{W_NS}">{content}</w:styles>'


def numbering_xml(content: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<w:numbering xmlns:w="{W_NS}">{content}</w:numbering>'


def rels_xml(content: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<Relationships xmlns="{PACKAGE_RELS_NS}">{content}</Relationships>'


def build_docx(
    body: str,
    styles: Optional[str] = None,
    numbering: Optional[str] = None,
    rels: Optional[str] = None,
    extra: Optional[Dict[str, str]] = None,
) -> bytes:
    """Zip a minimal package around ``body``; other parts are wrapped when given."""
    entries = {
        "[Content_Types].xml": (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="xml" ContentType="application/xml"/>'
            "</Types>"
        ),
        "word/document.xml": document_xml(body),
    }
    if styles is not None:
        entries["word/styles.xml"] = styles_xml(styles)
    if numbering is not None:
        entries["word/numbering.xml"] = numbering_xml(numbering)
    if rels is not None:
        entries["word/_rels/document.xml.rels"] = rels_xml(rels)
    entries.update(extra or {})

    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return out.getvalue()


@pytest.fixture
def make_docx():
    return build_docx
