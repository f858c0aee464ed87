"""Document statistics computed from the parsed IR."""

from __future__ import annotations

import logging
from typing import Iterable, List, Set, Union

from docxstream.ir import DocxDocument, DocxParagraph, DocxStatistics

logger = logging.getLogger(__name__)


def _iter_texts(block: DocxParagraph) -> Iterable[str]:
    if block.is_table:
        for row in block.table_data or []:
            for cell in row:
                if cell:
                    yield cell
    elif block.text:
        yield block.text


def get_document_statistics(document: Union[DocxDocument, List[DocxParagraph]]) -> DocxStatistics:
    """Summarize a parsed document.

    Placeholders for unparsed elements are not counted as paragraphs.
    Auxiliary-part flags are only set when the document was parsed with
    those parts included.
    """
    if isinstance(document, DocxDocument):
        blocks = document.paragraphs
    else:
        blocks = document
        document = DocxDocument(paragraphs=blocks)

    stats = DocxStatistics()
    style_ids: Set[str] = set()

    for block in blocks:
        if block.is_placeholder:
            continue
        if block.is_table:
            stats.table_count += 1
            stats.table_row_count += len(block.table_data or [])
            if block.table_style_id:
                style_ids.add(block.table_style_id)
        else:
            stats.paragraph_count += 1
            stats.image_count += len(block.images)
            if block.heading_level:
                stats.heading_count += 1
            if block.numbering is not None:
                stats.has_numbering = True
            if block.style_id:
                style_ids.add(block.style_id)

        for text in _iter_texts(block):
            stats.word_count += len(text.split())
            stats.character_count += len(text)

    stats.has_comments = bool(document.comments)
    stats.has_footnotes = bool(document.footnotes)
    stats.has_endnotes = bool(document.endnotes)
    stats.has_headers = bool(document.headers)
    stats.has_footers = bool(document.footers)
    stats.style_ids = sorted(style_ids)

    logger.debug(
        f"Statistics: {stats.paragraph_count} paragraphs, {stats.table_count} tables, {stats.word_count} words"
    )
    return stats
