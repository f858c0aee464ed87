"""Tests for table grid construction and merge tracking."""

from docxstream.docx_parser.paragraphs import ParseContext
from docxstream.docx_parser.tables import parse_table
from docxstream.docx_parser.xmltree import parse_xml

from conftest import DOCUMENT_NAMESPACES


def _tbl(inner):
    return parse_table(parse_xml(f"<w:tbl {DOCUMENT_NAMESPACES}>{inner}</w:tbl>"), ParseContext())


def _cell(text="", tc_pr=""):
    return f"<w:tc><w:tcPr>{tc_pr}</w:tcPr><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:tc>"


def _grid(widths):
    return "<w:tblGrid>" + "".join(f'<w:gridCol w:w="{w}"/>' for w in widths) + "</w:tblGrid>"


def _columns_accounted(row_styles):
    """Span-weighted owners plus skip cells that no owner covers."""
    covered = set()
    total = 0
    for col, style in enumerate(row_styles):
        if not style.skip:
            span = style.grid_span or 1
            covered.update(range(col + 1, col + span))
            total += span
    total += sum(1 for col, style in enumerate(row_styles) if style.skip and col not in covered)
    return total


class TestTableGrid:
    """Tests for rectangular output."""

    def test_full_width_first_row(self):
        """A 5x4 table whose first row is one cell spanning all columns."""
        rows = "<w:tr>" + _cell("Title", '<w:gridSpan w:val="4"/>') + "</w:tr>"
        for r in range(4):
            rows += "<w:tr>" + "".join(_cell(f"r{r}c{c}") for c in range(4)) + "</w:tr>"
        table = _tbl(_grid([2000] * 4) + rows)

        assert table.is_table
        assert len(table.table_data) == 5
        assert all(len(row) == 4 for row in table.table_data)
        first = table.table_cell_styles[0]
        assert first[0].grid_span == 4
        assert [s.skip for s in first[1:]] == [True, True, True]
        assert table.table_data[0][0] == "Title"
        assert table.table_data[4][3] == "r3c3"

    def test_columns_accounted_in_every_row(self):
        rows = (
            "<w:tr>" + _cell("a", '<w:gridSpan w:val="2"/><w:vMerge w:val="restart"/>') + _cell("b") + "</w:tr>"
            "<w:tr>" + _cell("", '<w:gridSpan w:val="2"/><w:vMerge/>') + _cell("c") + "</w:tr>"
            '<w:tr><w:trPr><w:gridBefore w:val="1"/></w:trPr>' + _cell("d") + _cell("e") + "</w:tr>"
        )
        table = _tbl(_grid([1000, 1000, 1000]) + rows)

        for row_styles in table.table_cell_styles:
            assert len(row_styles) == 3
            assert _columns_accounted(row_styles) == 3

    def test_grid_from_rows_when_missing(self):
        table = _tbl("<w:tr>" + _cell("a") + _cell("b", '<w:gridSpan w:val="2"/>') + "</w:tr>")
        assert len(table.table_data[0]) == 3
        assert table.table_grid_cols is None

    def test_extra_cells_dropped(self):
        table = _tbl(_grid([1000, 1000]) + "<w:tr>" + _cell("a") + _cell("b") + _cell("c") + "</w:tr>")
        assert table.table_data == [["a", "b"]]

    def test_span_truncated_at_grid_edge(self):
        """A cell spanning past the last column only owns the columns left."""
        table = _tbl(_grid([1000, 1000, 1000]) + "<w:tr>" + _cell("a") + _cell("b", '<w:gridSpan w:val="4"/>') + "</w:tr>")
        row = table.table_cell_styles[0]

        assert table.table_data == [["a", "b", ""]]
        assert [(s.grid_span, s.skip) for s in row] == [(None, False), (2, False), (None, True)]
        assert _columns_accounted(row) == 3

    def test_grid_before_and_after(self):
        rows = (
            '<w:tr><w:trPr><w:gridBefore w:val="1"/><w:gridAfter w:val="1"/></w:trPr>' + _cell("mid") + "</w:tr>"
        )
        table = _tbl(_grid([1000, 1000, 1000]) + rows)
        assert [s.skip for s in table.table_cell_styles[0]] == [True, False, True]
        assert table.table_data[0] == ["", "mid", ""]


class TestVerticalMerge:
    """Tests for vMerge tracking."""

    def test_continuation_inherits_fill(self):
        rows = (
            "<w:tr>" + _cell("Merged", '<w:vMerge w:val="restart"/><w:shd w:val="clear" w:fill="808080"/>') + _cell("x") + "</w:tr>"
            "<w:tr>" + _cell("", "<w:vMerge/>") + _cell("y") + "</w:tr>"
        )
        table = _tbl(_grid([1000, 1000]) + rows)

        owner = table.table_cell_styles[0][0]
        continuation = table.table_cell_styles[1][0]
        assert owner.row_span == 2
        assert owner.fill == "808080"
        assert continuation.skip is True
        assert continuation.fill == "808080"
        assert table.table_data[1] == ["", "y"]

    def test_restart_ends_previous_merge(self):
        rows = (
            "<w:tr>" + _cell("A", '<w:vMerge w:val="restart"/>') + "</w:tr>"
            "<w:tr>" + _cell("", "<w:vMerge/>") + "</w:tr>"
            "<w:tr>" + _cell("B", '<w:vMerge w:val="restart"/>') + "</w:tr>"
            "<w:tr>" + _cell("", "<w:vMerge/>") + "</w:tr>"
        )
        table = _tbl(_grid([1000]) + rows)
        styles = [row[0] for row in table.table_cell_styles]
        assert styles[0].row_span == 2
        assert styles[2].row_span == 2

    def test_orphan_continuation_is_skip(self):
        table = _tbl(_grid([1000]) + "<w:tr>" + _cell("", "<w:vMerge/>") + "</w:tr>")
        assert table.table_cell_styles[0][0].skip is True


class TestTableProperties:
    """Tests for table-level properties and cell styles."""

    def test_borders_layout_style(self):
        tbl_pr = """
        <w:tblPr>
            <w:tblStyle w:val="TableGrid"/>
            <w:tblLayout w:type="fixed"/>
            <w:tblBorders>
                <w:top w:val="single" w:sz="8" w:color="FF0000"/>
                <w:start w:val="double" w:sz="4" w:color="auto"/>
            </w:tblBorders>
        </w:tblPr>
        """
        table = _tbl(tbl_pr + _grid([1000]) + "<w:tr>" + _cell("a") + "</w:tr>")

        assert table.table_style_id == "TableGrid"
        assert table.table_layout == "fixed"
        assert table.table_borders.top.size == 8
        assert table.table_borders.top.color == "FF0000"
        assert table.table_borders.left.style == "double"
        assert table.table_borders.left.color == "auto"
        assert table.table_borders.bottom is None

    def test_cell_style_from_content(self):
        cell = (
            '<w:tc><w:tcPr><w:vAlign w:val="center"/></w:tcPr>'
            '<w:p><w:pPr><w:jc w:val="right"/></w:pPr><w:r><w:rPr><w:b/><w:sz w:val="18"/></w:rPr><w:t>9</w:t></w:r></w:p></w:tc>'
        )
        table = _tbl(_grid([1000]) + "<w:tr>" + cell + "</w:tr>")
        style = table.table_cell_styles[0][0]

        assert style.vertical_align == "center"
        assert style.alignment == "right"
        assert style.bold is True
        assert style.font_size == 9.0
        assert style.col_index == 0

    def test_multi_paragraph_cell_text(self):
        cell = "<w:tc><w:p><w:r><w:t>one</w:t></w:r></w:p><w:p><w:r><w:t>two</w:t></w:r></w:p></w:tc>"
        table = _tbl(_grid([1000]) + "<w:tr>" + cell + "</w:tr>")
        assert table.table_data[0][0] == "one\ntwo"
