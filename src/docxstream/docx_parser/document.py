"""DOCX Document Parser - Main entry point for parsing .docx packages."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from lxml import etree

from docxstream.docx_parser.archive import (
    COMMENTS_XML_PATH,
    DOCUMENT_RELS_PATH,
    DOCUMENT_XML_PATH,
    ENDNOTES_XML_PATH,
    FOOTNOTES_XML_PATH,
    NUMBERING_XML_PATH,
    STYLES_XML_PATH,
    read_entry,
)
from docxstream.docx_parser.numbering import apply_numbering, parse_numbering
from docxstream.docx_parser.paragraphs import ParseContext, parse_paragraph
from docxstream.docx_parser.relationships import parse_relationships, resolve_part_path
from docxstream.docx_parser.sections import find_paragraph_sect_pr, parse_section_properties
from docxstream.docx_parser.styles import StyleTable, parse_styles
from docxstream.docx_parser.tables import parse_table
from docxstream.docx_parser.xmltree import (
    XmlElement,
    attribute,
    child,
    child_elements,
    children_named,
    parse_xml,
)
from docxstream.ir import CommentContent, DocxDocument, DocxParagraph, RunStyle

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Body-level markers that carry no visible content
_IGNORED_BODY_TAGS = {"w:bookmarkStart", "w:bookmarkEnd"}

PLACEHOLDER_COLOR = "999999"
PLACEHOLDER_FONT_SIZE = 9


def _parse_optional_part(
    buffer: bytes, path: str, parse: Callable[[bytes], T], default: T
) -> T:
    """Parse an optional part; a malformed one is treated as absent."""
    data = read_entry(buffer, path)
    if data is None:
        return default
    try:
        return parse(data)
    except etree.XMLSyntaxError as exc:
        logger.warning(f"Ignoring malformed {path}: {exc}")
        return default


def load_context(buffer: bytes) -> ParseContext:
    """Build the style, relationship and numbering tables of a package."""
    return ParseContext(
        styles=_parse_optional_part(buffer, STYLES_XML_PATH, parse_styles, StyleTable()),
        relationships=_parse_optional_part(buffer, DOCUMENT_RELS_PATH, parse_relationships, {}),
        numbering=_parse_optional_part(buffer, NUMBERING_XML_PATH, parse_numbering, {}),
    )


def placeholder_paragraph(tag: str) -> DocxParagraph:
    """Visible stand-in for a body element the parser does not understand."""
    text = f"[Unparsed element: {tag}]"
    run = RunStyle(text=text, italic=True, font_size=PLACEHOLDER_FONT_SIZE, color=PLACEHOLDER_COLOR)
    return DocxParagraph(
        text=text,
        runs=[run],
        italic=True,
        font_size=PLACEHOLDER_FONT_SIZE,
        color=PLACEHOLDER_COLOR,
        is_placeholder=True,
    )


def parse_body(body: XmlElement, ctx: ParseContext) -> List[DocxParagraph]:
    """Parse the children of w:body into paragraphs and tables.

    Section properties apply to everything before them back to the previous
    section break, so the body is folded right to left carrying the nearest
    following w:sectPr.
    """
    out_reversed: List[DocxParagraph] = []
    current_sect_pr: Optional[XmlElement] = None

    for node in reversed(child_elements(body)):
        tn = node.tag

        if tn == "w:sectPr":
            current_sect_pr = node
            continue

        if tn == "w:p":
            # A paragraph can itself end a section
            sect_pr = find_paragraph_sect_pr(node)
            if sect_pr is not None:
                current_sect_pr = sect_pr
            para = parse_paragraph(node, ctx)
            apply_numbering(para.numbering, ctx.numbering)
            para.section_properties = parse_section_properties(current_sect_pr)
            out_reversed.append(para)
            continue

        if tn == "w:tbl":
            table = parse_table(node, ctx)
            table.section_properties = parse_section_properties(current_sect_pr)
            out_reversed.append(table)
            continue

        if tn in _IGNORED_BODY_TAGS:
            continue

        logger.warning(f"Unparsed body element {tn}; emitting placeholder")
        out_reversed.append(placeholder_paragraph(tn))

    out_reversed.reverse()
    return out_reversed


def parse_docx(buffer: bytes) -> List[DocxParagraph]:
    """Parse a .docx package into its body paragraphs and tables.

    Args:
        buffer: Raw bytes of the .docx file.

    Returns:
        Ordered list of DocxParagraph records (tables have ``is_table``).
        Empty when the buffer is empty or the body is missing.

    Raises:
        ArchiveError: If the buffer is not a zip package.
        lxml.etree.XMLSyntaxError: If word/document.xml is not well-formed.
    """
    paragraphs, _ = _parse_package(buffer)
    return paragraphs


def _parse_package(buffer: bytes) -> Tuple[List[DocxParagraph], Optional[ParseContext]]:
    if not buffer:
        return [], None

    document_xml = read_entry(buffer, DOCUMENT_XML_PATH)
    if document_xml is None:
        logger.debug("Package has no word/document.xml")
        return [], None

    ctx = load_context(buffer)
    root = parse_xml(document_xml)
    body = child(root, "w:body") if root.tag == "w:document" else None
    if body is None:
        return [], ctx

    paragraphs = parse_body(body, ctx)
    logger.debug(f"Parsed {len(paragraphs)} body blocks")
    return paragraphs, ctx


def parse_block_content(container: Optional[XmlElement], ctx: ParseContext) -> List[DocxParagraph]:
    """Paragraphs and tables of a header, footer, note or comment."""
    blocks: List[DocxParagraph] = []
    for node in child_elements(container):
        if node.tag == "w:p":
            para = parse_paragraph(node, ctx)
            apply_numbering(para.numbering, ctx.numbering)
            blocks.append(para)
        elif node.tag == "w:tbl":
            blocks.append(parse_table(node, ctx))
        elif node.tag == "w:sdt":
            blocks.extend(parse_block_content(child(node, "w:sdtContent"), ctx))
    return blocks


def _parse_notes(buffer: bytes, path: str, note_tag: str, ctx: ParseContext) -> Dict[str, List[DocxParagraph]]:
    def parse(data: bytes) -> Dict[str, List[DocxParagraph]]:
        notes: Dict[str, List[DocxParagraph]] = {}
        for note in children_named(parse_xml(data), note_tag):
            note_id = attribute(note, "w:id")
            # Ids <= 0 are the separator and continuation notes
            if note_id is None or not note_id.lstrip("-").isdigit() or int(note_id) <= 0:
                continue
            notes[note_id] = parse_block_content(note, ctx)
        return notes

    return _parse_optional_part(buffer, path, parse, {})


def _parse_comments(buffer: bytes, ctx: ParseContext) -> Dict[str, CommentContent]:
    def parse(data: bytes) -> Dict[str, CommentContent]:
        comments: Dict[str, CommentContent] = {}
        for comment in children_named(parse_xml(data), "w:comment"):
            comment_id = attribute(comment, "w:id")
            if comment_id is None:
                continue
            comments[comment_id] = CommentContent(
                id=comment_id,
                author=attribute(comment, "w:author"),
                date=attribute(comment, "w:date"),
                initials=attribute(comment, "w:initials"),
                paragraphs=parse_block_content(comment, ctx),
            )
        return comments

    return _parse_optional_part(buffer, COMMENTS_XML_PATH, parse, {})


def _parse_headers_footers(buffer: bytes, ctx: ParseContext, kind: str) -> Dict[str, List[DocxParagraph]]:
    parts: Dict[str, List[DocxParagraph]] = {}
    for rel in ctx.relationships.values():
        if rel.kind != kind or rel.target_mode == "External":
            continue
        path = resolve_part_path(rel.target)
        parts[path] = _parse_optional_part(
            buffer, path, lambda data: parse_block_content(parse_xml(data), ctx), []
        )
    return parts


def parse_docx_document(
    buffer: bytes,
    include_headers_footers: bool = False,
    include_notes: bool = False,
    include_comments: bool = False,
) -> DocxDocument:
    """Parse a package including, on request, its auxiliary parts.

    Headers and footers are keyed by their entry path, notes and comments by
    their id.
    """
    paragraphs, ctx = _parse_package(buffer)
    document = DocxDocument(paragraphs=paragraphs)
    if ctx is None:
        return document

    if include_headers_footers:
        document.headers = _parse_headers_footers(buffer, ctx, "header")
        document.footers = _parse_headers_footers(buffer, ctx, "footer")
    if include_notes:
        document.footnotes = _parse_notes(buffer, FOOTNOTES_XML_PATH, "w:footnote", ctx)
        document.endnotes = _parse_notes(buffer, ENDNOTES_XML_PATH, "w:endnote", ctx)
    if include_comments:
        document.comments = _parse_comments(buffer, ctx)
    return document
