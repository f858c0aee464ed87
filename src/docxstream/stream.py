"""Streaming slicer - Truncate a package to its first N content units.

A content unit is one body paragraph or one table row. Every slice is a
complete package: all parts other than word/document.xml are copied
unchanged, and the section properties that apply to the last included unit
are carried into the truncated body.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from docxstream.docx_parser.archive import DOCUMENT_XML_PATH, read_entry, replace_entry
from docxstream.docx_parser.sections import find_paragraph_sect_pr
from docxstream.docx_parser.xmltree import (
    XmlElement,
    child,
    child_elements,
    children_named,
    clone,
    parse_xml,
    to_xml,
)
from docxstream.ir import DocxParagraph, FlattenedElement

logger = logging.getLogger(__name__)


def flatten_paragraphs_for_streaming(paragraphs: List[DocxParagraph]) -> List[FlattenedElement]:
    """One element per content unit, matching what ``slice_docx`` counts.

    Placeholders for unparsed body elements are not content units.
    """
    flattened: List[FlattenedElement] = []
    table_index = 0
    for para in paragraphs:
        if para.is_placeholder:
            continue
        if para.is_table:
            rows = para.table_data or []
            for row_index in range(len(rows)):
                flattened.append(
                    FlattenedElement(
                        type="table-row",
                        paragraph=para,
                        table_index=table_index,
                        row_index=row_index,
                        total_rows=len(rows),
                    )
                )
            table_index += 1
        else:
            flattened.append(FlattenedElement(type="paragraph", paragraph=para))
    return flattened


def _load_body(source: bytes) -> Tuple[Optional[XmlElement], Optional[XmlElement]]:
    if not source:
        return None, None
    document_xml = read_entry(source, DOCUMENT_XML_PATH)
    if document_xml is None:
        return None, None
    root = parse_xml(document_xml)
    if root.tag != "w:document":
        return root, None
    return root, child(root, "w:body")


def _find_sect_pr_from(body_children: List[XmlElement], start: int) -> Optional[XmlElement]:
    """First section break at or after ``start``, body-level or paragraph-embedded."""
    for node in body_children[max(0, start):]:
        if node.tag == "w:sectPr":
            return node
        if node.tag == "w:p":
            sect_pr = find_paragraph_sect_pr(node)
            if sect_pr is not None:
                return sect_pr
    return None


def _drop_paragraph_sect_pr(p: XmlElement) -> None:
    p_pr = child(p, "w:pPr")
    if p_pr is not None:
        p_pr.children = [c for c in p_pr.children if not (isinstance(c, XmlElement) and c.tag == "w:sectPr")]


def _partial_table(tbl: XmlElement, row_count: int) -> XmlElement:
    """Clone of a table keeping its properties, grid and leading rows."""
    kept = [clone(n) for n in (child(tbl, "w:tblPr"), child(tbl, "w:tblGrid")) if n is not None]
    kept.extend(clone(tr) for tr in children_named(tbl, "w:tr")[:row_count])
    return XmlElement(tag=tbl.tag, attributes=dict(tbl.attributes), children=kept)


def count_content_units(source: bytes) -> int:
    _, body = _load_body(source)
    total = 0
    for node in child_elements(body):
        if node.tag == "w:p":
            total += 1
        elif node.tag == "w:tbl":
            total += len(children_named(node, "w:tr"))
    return total


def slice_docx(source: bytes, unit_count: int) -> bytes:
    """Build a package holding only the first ``unit_count`` content units.

    Args:
        source: Raw bytes of the source .docx.
        unit_count: Number of paragraphs/table rows to keep.

    Returns:
        The sliced package, or ``b""`` when the source is empty or has no body.
    """
    root, body = _load_body(source)
    if root is None or body is None:
        return b""

    body_children = child_elements(body)
    new_children: List[XmlElement] = []
    included = 0
    last_included_index = -1

    for index, node in enumerate(body_children):
        if included >= unit_count:
            break
        if node.tag == "w:tbl":
            rows = min(unit_count - included, len(children_named(node, "w:tr")))
            if rows > 0:
                new_children.append(_partial_table(node, rows))
                last_included_index = index
                included += rows
        elif node.tag == "w:p":
            new_children.append(clone(node))
            last_included_index = index
            included += 1

    sect_pr = _find_sect_pr_from(body_children, last_included_index)
    if sect_pr is not None:
        if new_children and new_children[-1].tag == "w:p":
            # The last paragraph's own break moves to the body
            _drop_paragraph_sect_pr(new_children[-1])
        new_children.append(clone(sect_pr))

    body.children = new_children
    logger.debug(f"Sliced body to {included} units ({len(new_children)} elements)")
    return replace_entry(source, DOCUMENT_XML_PATH, to_xml(root))


def iter_progressive_slices(source: bytes, step: int = 1) -> Iterator[Tuple[int, bytes]]:
    """Yield ``(units, package)`` for growing cut-offs ending at the full document.

    Each slice is rebuilt from the source, so slices never drift from a
    direct ``slice_docx`` call.
    """
    if step < 1:
        raise ValueError("step must be at least 1")
    total = count_content_units(source)
    cut = 0
    while cut < total:
        cut = min(cut + step, total)
        yield cut, slice_docx(source, cut)
