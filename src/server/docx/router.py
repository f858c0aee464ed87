"""DOCX API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Form
from fastapi.responses import Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from server.config import settings
from server.docx.constants import (
    DEFAULT_GENERATED_NAME,
    DEFAULT_SLICE_NAME,
    DOCX_MEDIA_TYPE,
    STEP_HEADER,
    STREAM_MEDIA_TYPE,
    UNITS_HEADER,
)
from server.docx.dependencies import read_docx_upload
from server.docx.schemas import GenerateRequest, ParseResponse
from server.docx.service import generate_document, parse_document, plan_stream, slice_document


router = APIRouter(prefix="/docx", tags=["docx"])


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.post("/parse", response_model=ParseResponse)
async def parse_docx_upload(
    docx_bytes: bytes = Depends(read_docx_upload),
    include_headers_footers: bool = Form(default=False),
    include_notes: bool = Form(default=False),
    include_comments: bool = Form(default=False),
):
    return await run_in_threadpool(
        parse_document,
        docx_bytes,
        include_headers_footers,
        include_notes,
        include_comments,
    )


@router.post("/slice")
async def slice_docx_upload(
    units: int = Form(...),
    docx_bytes: bytes = Depends(read_docx_upload),
):
    sliced = await run_in_threadpool(slice_document, docx_bytes, units)
    return Response(content=sliced, media_type=DOCX_MEDIA_TYPE, headers=_attachment(DEFAULT_SLICE_NAME))


@router.post("/stream")
async def stream_docx_upload(
    step: Optional[int] = Form(default=None),
    docx_bytes: bytes = Depends(read_docx_upload),
):
    requested = step if step is not None else settings.default_stream_step
    plan = await run_in_threadpool(plan_stream, docx_bytes, requested)
    return StreamingResponse(
        plan.frames,
        media_type=STREAM_MEDIA_TYPE,
        headers={UNITS_HEADER: str(plan.total_units), STEP_HEADER: str(plan.step)},
    )


@router.post("/generate")
async def generate_docx(request: GenerateRequest):
    data = await run_in_threadpool(generate_document, request.paragraphs)
    return Response(content=data, media_type=DOCX_MEDIA_TYPE, headers=_attachment(DEFAULT_GENERATED_NAME))
