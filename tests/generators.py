"""Generate DOCX samples for testing with python-docx."""
import io

import docx
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor


def _save(doc) -> bytes:
    out = io.BytesIO()
    doc.save(out)
    return out.getvalue()


def generate_text_formatting() -> bytes:
    """Sample with headings and basic text formatting."""
    doc = docx.Document()
    doc.add_heading('Text Formatting Test', 1)

    p = doc.add_paragraph('This is a ')
    p.add_run('bold').bold = True
    p.add_run(' word.')

    p = doc.add_paragraph()
    r = p.add_run('Red twelve point')
    r.font.size = Pt(12)
    r.font.color.rgb = RGBColor(0xFF, 0x00, 0x00)

    p = doc.add_paragraph('Justified paragraph.')
    p.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY

    return _save(doc)


def generate_lists() -> bytes:
    """Sample with bullet and numbered lists."""
    doc = docx.Document()
    doc.add_paragraph('Unordered List:')
    doc.add_paragraph('Item 1', style='List Bullet')
    doc.add_paragraph('Item 2', style='List Bullet')

    doc.add_paragraph('Ordered List:')
    doc.add_paragraph('First', style='List Number')
    doc.add_paragraph('Second', style='List Number')
    return _save(doc)


def generate_tables() -> bytes:
    """Sample with a 3x3 table whose first row is merged."""
    doc = docx.Document()
    doc.add_paragraph('Table Test')

    table = doc.add_table(rows=3, cols=3)
    table.style = 'Table Grid'
    title = table.cell(0, 0).merge(table.cell(0, 2))
    title.text = "Header"
    for row in range(1, 3):
        for col in range(3):
            table.cell(row, col).text = f"{chr(65 + col)}{row}"

    doc.add_paragraph('After table')
    return _save(doc)
