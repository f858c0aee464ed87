"""DOCX generator - Build a complete package from the IR.

This is the inverse of ``docx_parser``: paragraphs, runs and tables are
written as WordprocessingML with lxml, together with the minimal set of parts
(content types, relationships, styles and, when lists are present, numbering)
needed for the result to open on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from lxml import etree

from docxstream.docx_parser.archive import (
    DOCUMENT_RELS_PATH,
    DOCUMENT_XML_PATH,
    NUMBERING_XML_PATH,
    STYLES_XML_PATH,
    write_package,
)
from docxstream.docx_parser.xmltree import NAMESPACES, XML_NAMESPACE
from docxstream.ir import (
    BorderSpec,
    CellStyle,
    DocxParagraph,
    NumberingSpec,
    RunStyle,
    SectionProperties,
)

logger = logging.getLogger(__name__)

W = NAMESPACES["w"]
R = NAMESPACES["r"]
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
PACKAGE_RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

CONTENT_TYPE_DOCUMENT = "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"
CONTENT_TYPE_STYLES = "application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"
CONTENT_TYPE_NUMBERING = "application/vnd.openxmlformats-officedocument.wordprocessingml.numbering+xml"
CONTENT_TYPE_RELS = "application/vnd.openxmlformats-package.relationships+xml"

# Half-points
DEFAULT_FONT_SIZE = 22
DEFAULT_CELL_FONT_SIZE = 20

HEADING_SIZES = {1: 32, 2: 28, 3: 26, 4: 24, 5: 22, 6: 22}
HYPERLINK_COLOR = "0563C1"

DEFAULT_BORDER = BorderSpec(style="single", size=4, color="000000")
TABLE_BORDER_SIDES = (
    ("top", "top"),
    ("left", "left"),
    ("bottom", "bottom"),
    ("right", "right"),
    ("insideH", "inside_horizontal"),
    ("insideV", "inside_vertical"),
)
CELL_BORDER_SIDES = (("top", "top"), ("left", "left"), ("bottom", "bottom"), ("right", "right"))

_RUN_TOGGLES = (
    ("b", "bold"),
    ("i", "italic"),
    ("caps", "all_caps"),
    ("smallCaps", "small_caps"),
    ("strike", "strikethrough"),
    ("dstrike", "double_strikethrough"),
    ("outline", "outline"),
    ("shadow", "shadow"),
    ("emboss", "emboss"),
    ("imprint", "imprint"),
)


def _w(name: str) -> str:
    return f"{{{W}}}{name}"


def _sub(parent: etree._Element, name: str, **attrs: object) -> etree._Element:
    """Append a w: element with w: attributes."""
    elem = etree.SubElement(parent, _w(name))
    for key, value in attrs.items():
        elem.set(_w(key), str(value))
    return elem


def _toggle(parent: etree._Element, name: str, value: Optional[bool]) -> None:
    if value is True:
        _sub(parent, name)
    elif value is False:
        _sub(parent, name, val="0")


def _tostring(elem: etree._Element) -> bytes:
    return etree.tostring(elem, xml_declaration=True, encoding="UTF-8", standalone=True)


def _half_points(size: float) -> int:
    return int(round(size * 2))


@dataclass
class _OpenMerge:
    owner: CellStyle
    span: int
    remaining: int


@dataclass
class _DocumentBuilder:
    hyperlinks: Dict[str, str] = field(default_factory=dict)  # target -> rId
    numbering: Dict[int, Dict[int, NumberingSpec]] = field(default_factory=dict)

    # Relationship ids 1 and 2 are reserved for styles and numbering
    def hyperlink_rel_id(self, target: str) -> str:
        if target not in self.hyperlinks:
            self.hyperlinks[target] = f"rId{len(self.hyperlinks) + 3}"
        return self.hyperlinks[target]

    # ---------------------------------------------------------------- runs

    def add_run(
        self,
        parent: etree._Element,
        run: RunStyle,
        char_style: Optional[str] = None,
        default_size: Optional[int] = None,
    ) -> etree._Element:
        r = _sub(parent, "r")
        self.add_run_properties(r, run, char_style, default_size)
        self._add_text(r, run.text)
        return r

    def add_run_properties(
        self,
        parent: etree._Element,
        run: RunStyle,
        char_style: Optional[str] = None,
        default_size: Optional[int] = None,
    ) -> None:
        rPr = _sub(parent, "rPr")
        if char_style:
            _sub(rPr, "rStyle", val=char_style)
        if run.font:
            _sub(rPr, "rFonts", ascii=run.font, hAnsi=run.font, eastAsia=run.font, cs=run.font)
        for tag, attr in _RUN_TOGGLES:
            _toggle(rPr, tag, getattr(run, attr))
        if run.color:
            _sub(rPr, "color", val=run.color)
        if run.font_size:
            _sub(rPr, "sz", val=_half_points(run.font_size))
        elif default_size:
            _sub(rPr, "sz", val=default_size)
        if run.highlight:
            _sub(rPr, "highlight", val=run.highlight)
        if run.underline is not None:
            _sub(rPr, "u", val="single" if run.underline else "none")
        if run.subscript:
            _sub(rPr, "vertAlign", val="subscript")
        elif run.superscript:
            _sub(rPr, "vertAlign", val="superscript")
        if len(rPr) == 0:
            parent.remove(rPr)

    def _add_text(self, r: etree._Element, text: str) -> None:
        """Write text as w:t segments separated by w:tab / w:br."""
        for line_index, line in enumerate(text.split("\n")):
            if line_index:
                _sub(r, "br")
            for seg_index, segment in enumerate(line.split("\t")):
                if seg_index:
                    _sub(r, "tab")
                if segment:
                    t = _sub(r, "t")
                    t.set(f"{{{XML_NAMESPACE}}}space", "preserve")
                    t.text = segment

    # ---------------------------------------------------------- paragraphs

    def _paragraph_properties(
        self, p: etree._Element, para: DocxParagraph, runs: List[RunStyle], empty: bool
    ) -> etree._Element:
        pPr = _sub(p, "pPr")
        if para.heading_level and 1 <= para.heading_level <= 6:
            _sub(pPr, "pStyle", val=f"Heading{para.heading_level}")
        _toggle(pPr, "keepNext", para.keep_next)
        _toggle(pPr, "keepLines", para.keep_lines)
        _toggle(pPr, "pageBreakBefore", para.page_break_before)
        _toggle(pPr, "widowControl", para.widow_control)

        numbering = para.numbering
        if numbering is not None and numbering.num_id is not None:
            numPr = _sub(pPr, "numPr")
            _sub(numPr, "ilvl", val=numbering.level or 0)
            _sub(numPr, "numId", val=numbering.num_id)
            self.numbering.setdefault(numbering.num_id, {})[numbering.level or 0] = numbering

        spacing = para.spacing
        if spacing is not None:
            attrs = {}
            if spacing.before is not None:
                attrs["before"] = spacing.before
            if spacing.after is not None:
                attrs["after"] = spacing.after
            if spacing.line is not None:
                attrs["line"] = spacing.line
            if spacing.line_rule:
                attrs["lineRule"] = spacing.line_rule
            if attrs:
                _sub(pPr, "spacing", **attrs)

        indent = para.indent
        if indent is not None:
            attrs = {}
            if indent.left is not None:
                attrs["left"] = indent.left
            if indent.right is not None:
                attrs["right"] = indent.right
            if indent.first_line is not None:
                attrs["firstLine"] = indent.first_line
            if indent.hanging is not None:
                attrs["hanging"] = indent.hanging
            if attrs:
                _sub(pPr, "ind", **attrs)

        if para.alignment:
            _sub(pPr, "jc", val="both" if para.alignment == "justify" else para.alignment)
        if para.outline_level is not None:
            _sub(pPr, "outlineLvl", val=para.outline_level)

        # The paragraph mark carries the formatting of an empty paragraph
        if empty:
            self.add_run_properties(pPr, runs[0])
        return pPr

    def add_paragraph(self, body: etree._Element, para: DocxParagraph) -> etree._Element:
        runs = para.runs or [
            RunStyle(
                text=para.text,
                bold=para.bold,
                italic=para.italic,
                underline=para.underline,
                font_size=para.font_size,
                color=para.color,
                font=para.font,
            )
        ]
        empty = not any(r.text for r in runs)

        p = _sub(body, "p")
        pPr = self._paragraph_properties(p, para, runs, empty)
        if len(pPr) == 0:
            p.remove(pPr)
        if empty:
            return p

        container = p
        char_style = None
        if para.link:
            container = _sub(p, "hyperlink")
            container.set(f"{{{R}}}id", self.hyperlink_rel_id(para.link))
            char_style = "Hyperlink"
        for run in runs:
            if run.text:
                self.add_run(container, run, char_style)
        return p

    # -------------------------------------------------------------- tables

    def _border(self, parent: etree._Element, name: str, spec: BorderSpec) -> None:
        style = (spec.style or "single").lower()
        size = spec.size if spec.size is not None else (0 if style in ("none", "nil") else 4)
        _sub(parent, name, val=style, sz=size, space=0, color=spec.color or "auto")

    def _cell(
        self,
        tr: etree._Element,
        style: CellStyle,
        text: str,
        span: int,
        width: Optional[int],
        v_merge: Optional[str],
    ) -> None:
        tc = _sub(tr, "tc")
        tcPr = _sub(tc, "tcPr")
        if width:
            _sub(tcPr, "tcW", w=width, type="dxa")
        if span > 1:
            _sub(tcPr, "gridSpan", val=span)
        if v_merge == "restart":
            _sub(tcPr, "vMerge", val="restart")
        elif v_merge == "continue":
            _sub(tcPr, "vMerge")
        if style.borders is not None:
            tcBorders = _sub(tcPr, "tcBorders")
            for tag, attr in CELL_BORDER_SIDES:
                spec = getattr(style.borders, attr)
                if spec is not None:
                    self._border(tcBorders, tag, spec)
        if style.fill:
            _sub(tcPr, "shd", val="clear", color="auto", fill=style.fill)
        if style.vertical_align:
            _sub(tcPr, "vAlign", val=style.vertical_align)
        if len(tcPr) == 0:
            tc.remove(tcPr)

        run_style = RunStyle(
            text="",
            bold=style.bold,
            italic=style.italic,
            font_size=style.font_size,
            color=style.color,
            font=style.font,
        )
        # A cell holds at least one paragraph; one paragraph per text line
        for line in text.split("\n"):
            p = _sub(tc, "p")
            if style.alignment:
                pPr = _sub(p, "pPr")
                _sub(pPr, "jc", val="both" if style.alignment == "justify" else style.alignment)
            if line:
                run_style.text = line
                self.add_run(p, run_style, default_size=DEFAULT_CELL_FONT_SIZE)

    def add_table(self, body: etree._Element, table: DocxParagraph) -> etree._Element:
        rows = table.table_data or []
        styles = table.table_cell_styles or []
        grid = [w for w in (table.table_grid_cols or []) if w > 0]
        col_count = max([len(grid)] + [len(row) for row in rows])

        tbl = _sub(body, "tbl")
        tblPr = _sub(tbl, "tblPr")
        if table.table_style_id:
            _sub(tblPr, "tblStyle", val=table.table_style_id)
        if grid:
            _sub(tblPr, "tblW", w=sum(grid), type="dxa")
        else:
            _sub(tblPr, "tblW", w=5000, type="pct")
        tblBorders = _sub(tblPr, "tblBorders")
        for tag, attr in TABLE_BORDER_SIDES:
            spec = getattr(table.table_borders, attr) if table.table_borders else None
            self._border(tblBorders, tag, spec or DEFAULT_BORDER)
        if table.table_layout:
            _sub(tblPr, "tblLayout", type=table.table_layout)

        tblGrid = _sub(tbl, "tblGrid")
        for col in range(col_count):
            if col < len(grid):
                _sub(tblGrid, "gridCol", w=grid[col])
            else:
                _sub(tblGrid, "gridCol")

        merges: Dict[int, _OpenMerge] = {}
        for row_index, row_texts in enumerate(rows):
            row_styles = styles[row_index] if row_index < len(styles) else []
            self._add_row(tbl, row_texts, row_styles, col_count, grid, merges)
        return tbl

    def _add_row(
        self,
        tbl: etree._Element,
        row_texts: List[str],
        row_styles: List[CellStyle],
        col_count: int,
        grid: List[int],
        merges: Dict[int, "_OpenMerge"],
    ) -> None:
        def style_at(col: int) -> CellStyle:
            return row_styles[col] if col < len(row_styles) else CellStyle()

        def width(col: int, span: int) -> Optional[int]:
            return sum(grid[col:col + span]) or None

        tr = _sub(tbl, "tr")
        before, after = _grid_padding(row_styles, col_count, merges)
        if before or after:
            trPr = _sub(tr, "trPr")
            if before:
                _sub(trPr, "gridBefore", val=before)
            if after:
                _sub(trPr, "gridAfter", val=after)

        col = before
        while col < col_count - after:
            merge = merges.get(col)
            if merge is not None:
                self._cell(tr, merge.owner, "", merge.span, width(col, merge.span), "continue")
                merge.remaining -= 1
                if merge.remaining <= 0:
                    del merges[col]
                col += merge.span
                continue

            style = style_at(col)
            if style.skip:
                self._cell(tr, CellStyle(), "", 1, width(col, 1), None)
                col += 1
                continue

            span = max(1, min(style.grid_span or 1, col_count - col))
            text = row_texts[col] if col < len(row_texts) else ""
            v_merge = None
            if style.row_span and style.row_span > 1:
                v_merge = "restart"
                merges[col] = _OpenMerge(owner=style, span=span, remaining=style.row_span - 1)
            self._cell(tr, style, text, span, width(col, span), v_merge)
            col += span

    # ------------------------------------------------------------ sections

    def add_section_properties(self, parent: etree._Element, section: Optional[SectionProperties]) -> None:
        sectPr = _sub(parent, "sectPr")
        if section is None:
            return
        size = section.page_size
        if size is not None:
            attrs = {}
            if size.width is not None:
                attrs["w"] = size.width
            if size.height is not None:
                attrs["h"] = size.height
            if size.orientation:
                attrs["orient"] = size.orientation
            _sub(sectPr, "pgSz", **attrs)
        margin = section.page_margin
        if margin is not None:
            attrs = {}
            for side in ("top", "right", "bottom", "left", "header", "footer", "gutter"):
                value = getattr(margin, side)
                if value is not None:
                    attrs[side] = value
            _sub(sectPr, "pgMar", **attrs)
        columns = section.columns
        if columns is not None:
            attrs = {}
            if columns.space is not None:
                attrs["space"] = columns.space
            if columns.count is not None:
                attrs["num"] = columns.count
            _sub(sectPr, "cols", **attrs)

    # ------------------------------------------------------------ document

    def build_document(self, paragraphs: List[DocxParagraph]) -> bytes:
        document = etree.Element(_w("document"), nsmap={"w": W, "r": R})
        body = _sub(document, "body")

        groups = _section_groups(paragraphs)
        for group_index, (section, blocks) in enumerate(groups):
            last = None
            for block in blocks:
                if block.is_table:
                    last = self.add_table(body, block)
                else:
                    last = self.add_paragraph(body, block)

            if group_index == len(groups) - 1:
                if section is not None:
                    self.add_section_properties(body, section)
                continue

            # Sections other than the last end with a paragraph-level break
            if last is None or last.tag != _w("p"):
                last = _sub(body, "p")
            pPr = last.find("w:pPr", NAMESPACES)
            if pPr is None:
                pPr = etree.Element(_w("pPr"))
                last.insert(0, pPr)
            self.add_section_properties(pPr, section)

        return _tostring(document)


def _grid_padding(
    row_styles: List[CellStyle], col_count: int, merges: Dict[int, _OpenMerge]
) -> Tuple[int, int]:
    """Leading/trailing skip columns without a cell, written as gridBefore/gridAfter."""

    def is_padding(col: int) -> bool:
        if col in merges or col >= len(row_styles):
            return False
        style = row_styles[col]
        return style.skip and style.col_index is None and style == CellStyle(skip=True)

    before = 0
    while before < col_count and is_padding(before):
        before += 1
    after = 0
    while after < col_count - before and is_padding(col_count - 1 - after):
        after += 1
    # A span-covered column after an owner is not padding
    if after:
        col = col_count - after - 1
        while col >= 0 and col not in merges and col < len(row_styles) and row_styles[col].skip:
            col -= 1
        if col >= 0:
            if col in merges:
                span = merges[col].span
            elif col < len(row_styles):
                span = row_styles[col].grid_span or 1
            else:
                span = 1
            after = min(after, max(0, col_count - col - span))
    return before, after


def _section_groups(
    paragraphs: List[DocxParagraph],
) -> List[Tuple[Optional[SectionProperties], List[DocxParagraph]]]:
    """Split blocks into runs of consecutive blocks sharing section properties."""
    groups: List[Tuple[Optional[SectionProperties], List[DocxParagraph]]] = []
    for para in paragraphs:
        if groups and groups[-1][0] == para.section_properties:
            groups[-1][1].append(para)
        else:
            groups.append((para.section_properties, [para]))
    return groups


def _styles_xml() -> bytes:
    styles = etree.Element(_w("styles"), nsmap={"w": W})
    defaults = _sub(styles, "docDefaults")
    rPr = _sub(_sub(defaults, "rPrDefault"), "rPr")
    _sub(rPr, "sz", val=DEFAULT_FONT_SIZE)
    _sub(rPr, "szCs", val=DEFAULT_FONT_SIZE)
    _sub(_sub(defaults, "pPrDefault"), "pPr")

    normal = _sub(styles, "style", type="paragraph", default="1", styleId="Normal")
    _sub(normal, "name", val="Normal")
    _sub(normal, "qFormat")

    for level in range(1, 7):
        heading = _sub(styles, "style", type="paragraph", styleId=f"Heading{level}")
        _sub(heading, "name", val=f"heading {level}")
        _sub(heading, "basedOn", val="Normal")
        _sub(heading, "next", val="Normal")
        _sub(heading, "qFormat")
        pPr = _sub(heading, "pPr")
        _sub(pPr, "keepNext")
        _sub(pPr, "outlineLvl", val=level - 1)
        hrPr = _sub(heading, "rPr")
        _sub(hrPr, "b")
        _sub(hrPr, "sz", val=HEADING_SIZES[level])

    hyperlink = _sub(styles, "style", type="character", styleId="Hyperlink")
    _sub(hyperlink, "name", val="Hyperlink")
    lrPr = _sub(hyperlink, "rPr")
    _sub(lrPr, "color", val=HYPERLINK_COLOR)
    _sub(lrPr, "u", val="single")
    return _tostring(styles)


def _numbering_xml(numbering: Dict[int, Dict[int, NumberingSpec]]) -> bytes:
    root = etree.Element(_w("numbering"), nsmap={"w": W})
    num_ids = sorted(numbering)
    for abstract_id, num_id in enumerate(num_ids):
        abstract = _sub(root, "abstractNum", abstractNumId=abstract_id)
        for level, spec in sorted(numbering[num_id].items()):
            lvl = _sub(abstract, "lvl", ilvl=level)
            _sub(lvl, "start", val=spec.start if spec.start is not None else 1)
            _sub(lvl, "numFmt", val=spec.format or "bullet")
            _sub(lvl, "lvlText", val=spec.text if spec.text is not None else "•")
    for abstract_id, num_id in enumerate(num_ids):
        num = _sub(root, "num", numId=num_id)
        _sub(num, "abstractNumId", val=abstract_id)
    return _tostring(root)


def _document_rels_xml(builder: _DocumentBuilder, has_numbering: bool) -> bytes:
    root = etree.Element(f"{{{PACKAGE_RELS_NS}}}Relationships", nsmap={None: PACKAGE_RELS_NS})

    def rel(rel_id: str, rel_type: str, target: str, external: bool = False) -> None:
        elem = etree.SubElement(root, f"{{{PACKAGE_RELS_NS}}}Relationship")
        elem.set("Id", rel_id)
        elem.set("Type", f"{REL_TYPE_BASE}/{rel_type}")
        elem.set("Target", target)
        if external:
            elem.set("TargetMode", "External")

    rel("rId1", "styles", "styles.xml")
    if has_numbering:
        rel("rId2", "numbering", "numbering.xml")
    for target, rel_id in builder.hyperlinks.items():
        rel(rel_id, "hyperlink", target, external=True)
    return _tostring(root)


def _package_rels_xml() -> bytes:
    root = etree.Element(f"{{{PACKAGE_RELS_NS}}}Relationships", nsmap={None: PACKAGE_RELS_NS})
    elem = etree.SubElement(root, f"{{{PACKAGE_RELS_NS}}}Relationship")
    elem.set("Id", "rId1")
    elem.set("Type", f"{REL_TYPE_BASE}/officeDocument")
    elem.set("Target", DOCUMENT_XML_PATH)
    return _tostring(root)


def _content_types_xml(has_numbering: bool) -> bytes:
    root = etree.Element(f"{{{CONTENT_TYPES_NS}}}Types", nsmap={None: CONTENT_TYPES_NS})
    for extension, content_type in (("rels", CONTENT_TYPE_RELS), ("xml", "application/xml")):
        default = etree.SubElement(root, f"{{{CONTENT_TYPES_NS}}}Default")
        default.set("Extension", extension)
        default.set("ContentType", content_type)
    overrides = [(DOCUMENT_XML_PATH, CONTENT_TYPE_DOCUMENT), (STYLES_XML_PATH, CONTENT_TYPE_STYLES)]
    if has_numbering:
        overrides.append((NUMBERING_XML_PATH, CONTENT_TYPE_NUMBERING))
    for part, content_type in overrides:
        override = etree.SubElement(root, f"{{{CONTENT_TYPES_NS}}}Override")
        override.set("PartName", f"/{part}")
        override.set("ContentType", content_type)
    return _tostring(root)


def create_docx_from_paragraphs(paragraphs: List[DocxParagraph]) -> bytes:
    """Generate a complete .docx package from parsed paragraphs and tables.

    Args:
        paragraphs: Blocks in document order, as returned by ``parse_docx``.

    Returns:
        Raw bytes of the new package.
    """
    builder = _DocumentBuilder()
    document_xml = builder.build_document(paragraphs)
    has_numbering = bool(builder.numbering)

    entries = {
        "[Content_Types].xml": _content_types_xml(has_numbering),
        "_rels/.rels": _package_rels_xml(),
        DOCUMENT_XML_PATH: document_xml,
        STYLES_XML_PATH: _styles_xml(),
        DOCUMENT_RELS_PATH: _document_rels_xml(builder, has_numbering),
    }
    if has_numbering:
        entries[NUMBERING_XML_PATH] = _numbering_xml(builder.numbering)

    logger.debug(f"Generated package with {len(paragraphs)} blocks")
    return write_package(entries)
