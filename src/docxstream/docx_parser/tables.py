"""Table parser - Build a rectangular cell grid with merge tracking."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from docxstream.docx_parser.paragraphs import ParseContext, parse_paragraph
from docxstream.docx_parser.utils import normalize_border_color, normalize_color, parse_int
from docxstream.docx_parser.xmltree import (
    XmlElement,
    attribute,
    child,
    children_named,
)
from docxstream.ir import BorderSpec, CellBorders, CellStyle, DocxParagraph, TableBorders

logger = logging.getLogger(__name__)

# Open vertical merges keyed by (start column, span)
MergeKey = Tuple[int, int]


def parse_border(node: Optional[XmlElement]) -> Optional[BorderSpec]:
    if node is None:
        return None
    style = (attribute(node, "w:val") or "").strip().lower()
    border = BorderSpec(
        style=style or None,
        size=parse_int(attribute(node, "w:sz")),
        color=normalize_border_color(attribute(node, "w:color")),
    )
    if border == BorderSpec():
        return None
    return border


def parse_table_borders(node: Optional[XmlElement]) -> Optional[TableBorders]:
    if node is None:
        return None
    borders = TableBorders(
        top=parse_border(child(node, "w:top")),
        bottom=parse_border(child(node, "w:bottom")),
        left=parse_border(child(node, "w:left") or child(node, "w:start")),
        right=parse_border(child(node, "w:right") or child(node, "w:end")),
        inside_horizontal=parse_border(child(node, "w:insideH")),
        inside_vertical=parse_border(child(node, "w:insideV")),
    )
    if borders == TableBorders():
        return None
    return borders


def parse_cell_borders(node: Optional[XmlElement]) -> Optional[CellBorders]:
    if node is None:
        return None
    borders = CellBorders(
        top=parse_border(child(node, "w:top")),
        bottom=parse_border(child(node, "w:bottom")),
        left=parse_border(child(node, "w:left") or child(node, "w:start")),
        right=parse_border(child(node, "w:right") or child(node, "w:end")),
    )
    if borders == CellBorders():
        return None
    return borders


def _grid_count(tr: XmlElement, name: str) -> int:
    value = parse_int(attribute(child(child(tr, "w:trPr"), name), "w:val"))
    return value if value is not None and value > 0 else 0


def _cell_span(tc: XmlElement) -> int:
    span = parse_int(attribute(child(child(tc, "w:tcPr"), "w:gridSpan"), "w:val"))
    return span if span is not None and span > 0 else 1


def _column_count(grid_cols: List[int], rows: List[XmlElement]) -> int:
    if grid_cols:
        return len(grid_cols)
    widest = 0
    for tr in rows:
        cols = _grid_count(tr, "w:gridBefore") + _grid_count(tr, "w:gridAfter")
        cols += sum(_cell_span(tc) for tc in children_named(tr, "w:tc"))
        widest = max(widest, cols)
    return widest


def _continuation_of(owner: CellStyle, col: int) -> CellStyle:
    return CellStyle(
        fill=owner.fill,
        borders=owner.borders,
        alignment=owner.alignment,
        vertical_align=owner.vertical_align,
        bold=owner.bold,
        italic=owner.italic,
        font_size=owner.font_size,
        color=owner.color,
        font=owner.font,
        col_index=col,
        skip=True,
    )


def _owner_style(tc_pr: Optional[XmlElement], paras: List[DocxParagraph], col: int, span: int) -> CellStyle:
    v_align = (attribute(child(tc_pr, "w:vAlign"), "w:val") or "").strip().lower()
    style = CellStyle(
        fill=normalize_color(attribute(child(tc_pr, "w:shd"), "w:fill")),
        borders=parse_cell_borders(child(tc_pr, "w:tcBorders")),
        alignment=next((p.alignment for p in paras if p.alignment), None),
        vertical_align={"center": "center", "bottom": "bottom"}.get(v_align, "top" if v_align else None),
        grid_span=span if span > 1 else None,
        col_index=col,
    )
    first_run = next((p.runs[0] for p in paras if p.runs), None)
    if first_run is not None:
        style.bold = first_run.bold
        style.italic = first_run.italic
        style.font_size = first_run.font_size
        style.color = first_run.color
        style.font = first_run.font
    return style


def parse_table(tbl: XmlElement, ctx: ParseContext) -> DocxParagraph:
    """Parse a w:tbl element into a table record.

    Every row of the result has the same number of columns. Columns covered
    by a horizontal span, a vertical merge continuation or a row's
    gridBefore/gridAfter are present with ``skip=True``.

    Args:
        tbl: The w:tbl node.
        ctx: Tables shared by the whole package parse.

    Returns:
        DocxParagraph with ``is_table=True``.
    """
    tbl_pr = child(tbl, "w:tblPr")
    rows = children_named(tbl, "w:tr")

    layout = (attribute(child(tbl_pr, "w:tblLayout"), "w:type") or "").strip().lower()
    grid_cols = [
        w
        for w in (parse_int(attribute(gc, "w:w")) for gc in children_named(child(tbl, "w:tblGrid"), "w:gridCol"))
        if w is not None and w > 0
    ]
    max_cols = _column_count(grid_cols, rows)

    table_data: List[List[str]] = []
    cell_styles: List[List[CellStyle]] = []
    merges: Dict[MergeKey, CellStyle] = {}

    for tr in rows:
        row_texts = [""] * max_cols
        row_styles = [CellStyle() for _ in range(max_cols)]

        before = min(max_cols, _grid_count(tr, "w:gridBefore"))
        for col in range(before):
            row_styles[col].skip = True
        cursor = before

        for tc in children_named(tr, "w:tc"):
            if cursor >= max_cols:
                logger.debug(f"Row claims more than {max_cols} columns; dropping extra cells")
                break

            tc_pr = child(tc, "w:tcPr")
            span = _cell_span(tc)
            v_merge = child(tc_pr, "w:vMerge")
            v_merge_val = (attribute(v_merge, "w:val") or "").strip().lower() if v_merge is not None else None

            col_start = cursor
            col_end = min(max_cols, col_start + span)
            cursor = col_end
            key = (col_start, span)

            if v_merge is not None and v_merge_val != "restart":
                owner = merges.get(key)
                if owner is not None:
                    owner.row_span = (owner.row_span or 1) + 1
                    row_styles[col_start] = _continuation_of(owner, col_start)
                else:
                    row_styles[col_start].skip = True
                for col in range(col_start + 1, col_end):
                    row_styles[col].skip = True
                continue

            merges.pop(key, None)

            paras = [parse_paragraph(p, ctx) for p in children_named(tc, "w:p")]
            row_texts[col_start] = "\n".join(p.text for p in paras)
            style = _owner_style(tc_pr, paras, col_start, col_end - col_start)
            if v_merge_val == "restart":
                style.row_span = 1
                merges[key] = style

            row_styles[col_start] = style
            for col in range(col_start + 1, col_end):
                row_styles[col] = CellStyle(skip=True)

        after = _grid_count(tr, "w:gridAfter")
        for col in range(max(0, max_cols - after), max_cols):
            row_styles[col].skip = True

        table_data.append(row_texts)
        cell_styles.append(row_styles)

    return DocxParagraph(
        text="",
        runs=[],
        is_table=True,
        table_data=table_data,
        table_cell_styles=cell_styles,
        table_layout=layout if layout in ("fixed", "autofit") else None,
        table_grid_cols=grid_cols or None,
        table_borders=parse_table_borders(child(tbl_pr, "w:tblBorders")),
        table_style_id=attribute(child(tbl_pr, "w:tblStyle"), "w:val"),
    )
