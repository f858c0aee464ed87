"""Intermediate Representation (IR) for parsed Word documents.

This module defines the data structures shared by the codec:
OOXML package -> Parser -> IR -> Generator / Slicer

Every optional field uses ``None`` for "not specified in the source", which is
different from an explicit ``False``/``0``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Literal, Optional

Alignment = Literal["left", "center", "right", "justify"]


@dataclass
class RunStyle:
    """A run of text with fully resolved formatting."""

    text: str
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    font_size: Optional[float] = None  # in points
    color: Optional[str] = None  # 6-digit uppercase hex
    font: Optional[str] = None
    highlight: Optional[str] = None  # named highlight keyword, e.g. "yellow"
    strikethrough: Optional[bool] = None
    double_strikethrough: Optional[bool] = None
    subscript: Optional[bool] = None
    superscript: Optional[bool] = None
    small_caps: Optional[bool] = None
    all_caps: Optional[bool] = None
    emboss: Optional[bool] = None
    imprint: Optional[bool] = None
    shadow: Optional[bool] = None
    outline: Optional[bool] = None


# Fields of RunStyle that participate in style resolution (everything but text)
RUN_PROPERTY_NAMES = tuple(f.name for f in fields(RunStyle) if f.name != "text")

# Fields copied onto the paragraph when every run agrees
UNIFORM_RUN_FIELDS = ("bold", "italic", "underline", "font_size", "color", "font")


@dataclass
class ParagraphSpacing:
    """Paragraph spacing in twips (line is in 240ths of a line for ``auto``)."""

    before: Optional[int] = None
    after: Optional[int] = None
    line: Optional[int] = None
    line_rule: Optional[Literal["auto", "exact", "atLeast"]] = None


@dataclass
class Indent:
    """Paragraph indentation in twips."""

    left: Optional[int] = None
    right: Optional[int] = None
    first_line: Optional[int] = None
    hanging: Optional[int] = None


@dataclass
class NumberingSpec:
    """List membership of a paragraph, backfilled from numbering.xml."""

    num_id: Optional[int] = None
    level: Optional[int] = None
    format: Optional[str] = None  # decimal, bullet, lowerRoman, ...
    text: Optional[str] = None  # level text, e.g. "%1."
    start: Optional[int] = None


@dataclass
class NumberingLevel:
    format: Optional[str] = None
    text: Optional[str] = None
    start: Optional[int] = None


@dataclass
class ImageSpec:
    relationship_id: Optional[str] = None
    target: Optional[str] = None  # resolved package path, e.g. "media/image1.png"
    width: Optional[float] = None  # in points
    height: Optional[float] = None  # in points
    description: Optional[str] = None
    title: Optional[str] = None


@dataclass
class BookmarkSpec:
    id: str
    name: str = ""
    type: Literal["start", "end"] = "start"


@dataclass
class FieldSpec:
    code: str
    result: str = ""
    field_type: Literal[
        "toc", "pageref", "ref", "hyperlink", "date", "time", "formula", "other"
    ] = "other"


@dataclass
class NoteSpec:
    type: Literal["footnote", "endnote"]
    id: str


@dataclass
class CommentSpec:
    id: str
    range_type: Literal["start", "end"]


@dataclass
class RevisionSpec:
    """A tracked insertion or deletion captured from w:ins / w:del."""

    type: Literal["insert", "delete", "moveFrom", "moveTo"]
    id: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    content: str = ""


@dataclass
class BorderSpec:
    style: Optional[str] = None  # single, double, dotted, none, ...
    size: Optional[int] = None  # eighths of a point
    color: Optional[str] = None  # 6-digit hex or "auto"


@dataclass
class TableBorders:
    top: Optional[BorderSpec] = None
    bottom: Optional[BorderSpec] = None
    left: Optional[BorderSpec] = None
    right: Optional[BorderSpec] = None
    inside_horizontal: Optional[BorderSpec] = None
    inside_vertical: Optional[BorderSpec] = None


@dataclass
class CellBorders:
    top: Optional[BorderSpec] = None
    bottom: Optional[BorderSpec] = None
    left: Optional[BorderSpec] = None
    right: Optional[BorderSpec] = None


@dataclass
class CellStyle:
    """Resolved style and grid position of one table cell."""

    fill: Optional[str] = None
    borders: Optional[CellBorders] = None
    alignment: Optional[Alignment] = None
    vertical_align: Optional[Literal["top", "center", "bottom"]] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    font: Optional[str] = None
    grid_span: Optional[int] = None  # set only when > 1
    row_span: Optional[int] = None  # set only on the owner of a vertical merge
    col_index: Optional[int] = None
    skip: bool = False


@dataclass
class PageSize:
    width: Optional[int] = None  # twips
    height: Optional[int] = None
    orientation: Optional[Literal["portrait", "landscape"]] = None


@dataclass
class PageMargin:
    top: Optional[int] = None
    right: Optional[int] = None
    bottom: Optional[int] = None
    left: Optional[int] = None
    header: Optional[int] = None
    footer: Optional[int] = None
    gutter: Optional[int] = None


@dataclass
class Columns:
    count: Optional[int] = None
    space: Optional[int] = None


@dataclass
class SectionProperties:
    """Page layout of a section, in native twips."""

    page_size: Optional[PageSize] = None
    page_margin: Optional[PageMargin] = None
    columns: Optional[Columns] = None


@dataclass
class DocxParagraph:
    """A body block: either a paragraph or, with ``is_table``, a table."""

    text: str = ""
    runs: List[RunStyle] = field(default_factory=list)
    alignment: Optional[Alignment] = None
    heading_level: Optional[int] = None
    style_id: Optional[str] = None
    spacing: Optional[ParagraphSpacing] = None
    indent: Optional[Indent] = None
    numbering: Optional[NumberingSpec] = None
    section_properties: Optional[SectionProperties] = None
    link: Optional[str] = None

    # Copies of the run formatting when every run agrees
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    font: Optional[str] = None

    keep_next: Optional[bool] = None
    keep_lines: Optional[bool] = None
    page_break_before: Optional[bool] = None
    widow_control: Optional[bool] = None
    outline_level: Optional[int] = None

    images: List[ImageSpec] = field(default_factory=list)
    bookmarks: List[BookmarkSpec] = field(default_factory=list)
    fields: List[FieldSpec] = field(default_factory=list)
    notes: List[NoteSpec] = field(default_factory=list)
    comments: List[CommentSpec] = field(default_factory=list)
    revisions: List[RevisionSpec] = field(default_factory=list)

    # Unrecognized body element rendered as visible text
    is_placeholder: bool = False

    # Table variant
    is_table: bool = False
    table_data: Optional[List[List[str]]] = None
    table_cell_styles: Optional[List[List[CellStyle]]] = None
    table_grid_cols: Optional[List[int]] = None
    table_borders: Optional[TableBorders] = None
    table_layout: Optional[Literal["fixed", "autofit"]] = None
    table_style_id: Optional[str] = None


@dataclass
class FlattenedElement:
    """One streaming content unit: a paragraph or a single table row."""

    type: Literal["paragraph", "table-row"]
    paragraph: Optional[DocxParagraph] = None
    table_index: Optional[int] = None
    row_index: Optional[int] = None
    total_rows: Optional[int] = None


@dataclass
class CommentContent:
    id: str
    author: Optional[str] = None
    date: Optional[str] = None
    initials: Optional[str] = None
    paragraphs: List[DocxParagraph] = field(default_factory=list)


@dataclass
class DocxDocument:
    """A parsed package: the body plus optional auxiliary parts."""

    paragraphs: List[DocxParagraph] = field(default_factory=list)
    headers: Dict[str, List[DocxParagraph]] = field(default_factory=dict)
    footers: Dict[str, List[DocxParagraph]] = field(default_factory=dict)
    footnotes: Dict[str, List[DocxParagraph]] = field(default_factory=dict)
    endnotes: Dict[str, List[DocxParagraph]] = field(default_factory=dict)
    comments: Dict[str, CommentContent] = field(default_factory=dict)


@dataclass
class DocxStatistics:
    paragraph_count: int = 0
    table_count: int = 0
    table_row_count: int = 0
    image_count: int = 0
    word_count: int = 0
    character_count: int = 0
    heading_count: int = 0
    has_numbering: bool = False
    has_comments: bool = False
    has_footnotes: bool = False
    has_endnotes: bool = False
    has_headers: bool = False
    has_footers: bool = False
    style_ids: List[str] = field(default_factory=list)


def to_dict(value: Any) -> Any:
    """Convert IR records into JSON-compatible structures.

    ``None`` fields, empty collections and ``False`` flags are omitted so the
    output only carries what the source actually specified. Explicit ``False``
    formatting values (e.g. ``bold=False``) are kept.
    """
    if is_dataclass(value) and not isinstance(value, type):
        out: Dict[str, Any] = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            if isinstance(item, (list, dict)) and not item:
                continue
            if item is False and f.name in ("skip", "is_table", "is_placeholder"):
                continue
            out[f.name] = to_dict(item)
        return out
    if isinstance(value, list):
        return [to_dict(v) for v in value]
    if isinstance(value, dict):
        return {k: to_dict(v) for k, v in value.items()}
    return value
