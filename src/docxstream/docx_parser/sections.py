"""Section parser - Page size, margins and columns from w:sectPr."""

from __future__ import annotations

from typing import List, Optional

from docxstream.docx_parser.utils import parse_int
from docxstream.docx_parser.xmltree import XmlElement, attribute, child, child_elements, parse_xml
from docxstream.ir import Columns, PageMargin, PageSize, SectionProperties

_MARGIN_SIDES = ("top", "right", "bottom", "left", "header", "footer", "gutter")


def parse_section_properties(sect_pr: Optional[XmlElement]) -> Optional[SectionProperties]:
    """Parse a w:sectPr node. Values stay in twips.

    Returns:
        SectionProperties, or None when the node is absent or carries none of
        the recognized settings.
    """
    if sect_pr is None:
        return None

    section = SectionProperties()

    pg_sz = child(sect_pr, "w:pgSz")
    if pg_sz is not None:
        orient = (attribute(pg_sz, "w:orient") or "").strip().lower()
        size = PageSize(
            width=parse_int(attribute(pg_sz, "w:w")),
            height=parse_int(attribute(pg_sz, "w:h")),
            orientation=orient if orient in ("portrait", "landscape") else None,
        )
        if size != PageSize():
            section.page_size = size

    pg_mar = child(sect_pr, "w:pgMar")
    if pg_mar is not None:
        margin = PageMargin(**{side: parse_int(attribute(pg_mar, f"w:{side}")) for side in _MARGIN_SIDES})
        if margin != PageMargin():
            section.page_margin = margin

    cols = child(sect_pr, "w:cols")
    if cols is not None:
        columns = Columns(
            count=parse_int(attribute(cols, "w:num")),
            space=parse_int(attribute(cols, "w:space")),
        )
        if columns != Columns():
            section.columns = columns

    if section == SectionProperties():
        return None
    return section


def find_paragraph_sect_pr(p: XmlElement) -> Optional[XmlElement]:
    """The w:sectPr embedded in a paragraph's w:pPr, which ends a section."""
    return child(child(p, "w:pPr"), "w:sectPr")


def parse_sections(document_xml: bytes) -> List[SectionProperties]:
    """All sections of a document body in document order."""
    root = parse_xml(document_xml)
    body = child(root, "w:body")
    sections: List[SectionProperties] = []
    for node in child_elements(body):
        sect_pr = None
        if node.tag == "w:p":
            sect_pr = find_paragraph_sect_pr(node)
        elif node.tag == "w:sectPr":
            sect_pr = node
        section = parse_section_properties(sect_pr)
        if section is not None:
            sections.append(section)
    return sections
