"""DOCX service orchestration."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, List

from lxml import etree

from docxstream.docx_parser import ArchiveError, parse_docx_document
from docxstream.generator import create_docx_from_paragraphs
from docxstream.ir import DocxParagraph, to_dict
from docxstream.statistics import get_document_statistics
from docxstream.stream import count_content_units, slice_docx

from server.config import settings
from server.docx.framing import iter_framed_slices
from server.docx.schemas import ParseResponse
from server.exceptions import BadRequest, InvalidDocument

logger = logging.getLogger(__name__)

_DOCUMENT_ERRORS = (ArchiveError, etree.XMLSyntaxError)


@dataclass
class StreamPlan:
    total_units: int
    step: int
    frames: Iterator[bytes]


def parse_document(
    docx_bytes: bytes,
    include_headers_footers: bool = False,
    include_notes: bool = False,
    include_comments: bool = False,
) -> ParseResponse:
    try:
        document = parse_docx_document(
            docx_bytes,
            include_headers_footers=include_headers_footers,
            include_notes=include_notes,
            include_comments=include_comments,
        )
        units = count_content_units(docx_bytes)
    except _DOCUMENT_ERRORS as exc:
        raise InvalidDocument(f"Could not parse document: {exc}") from exc

    serialized = to_dict(document)
    return ParseResponse(
        paragraphs=serialized.get("paragraphs", []),
        statistics=to_dict(get_document_statistics(document)),
        units=units,
        headers=serialized.get("headers", {}),
        footers=serialized.get("footers", {}),
        footnotes=serialized.get("footnotes", {}),
        endnotes=serialized.get("endnotes", {}),
        comments=serialized.get("comments", {}),
    )


def slice_document(docx_bytes: bytes, units: int) -> bytes:
    if units < 0:
        raise BadRequest("units must not be negative")
    try:
        sliced = slice_docx(docx_bytes, units)
    except _DOCUMENT_ERRORS as exc:
        raise InvalidDocument(f"Could not slice document: {exc}") from exc
    if not sliced:
        raise InvalidDocument("Document has no body to slice")
    return sliced


def effective_step(total_units: int, requested: int) -> int:
    """Enlarge ``requested`` so the stream stays within ``max_stream_slices`` frames."""
    if requested < 1:
        raise BadRequest("step must be at least 1")
    if total_units <= 0:
        return requested
    minimum = math.ceil(total_units / max(1, settings.max_stream_slices))
    return max(requested, minimum)


def plan_stream(docx_bytes: bytes, requested_step: int) -> StreamPlan:
    """Validate the document up front so errors surface before streaming starts."""
    try:
        total = count_content_units(docx_bytes)
        if not slice_docx(docx_bytes, 0):
            raise InvalidDocument("Document has no body to stream")
    except _DOCUMENT_ERRORS as exc:
        raise InvalidDocument(f"Could not read document: {exc}") from exc

    step = effective_step(total, requested_step)
    if step != requested_step:
        logger.info(f"Enlarged stream step {requested_step} -> {step} for {total} units")
    return StreamPlan(total_units=total, step=step, frames=iter_framed_slices(docx_bytes, step))


def generate_document(paragraphs: List[DocxParagraph]) -> bytes:
    return create_docx_from_paragraphs(paragraphs)
