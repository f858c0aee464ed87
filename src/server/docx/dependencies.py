"""DOCX upload dependency helpers."""

from fastapi import File, UploadFile

from server.config import settings
from server.exceptions import BadRequest, UploadTooLarge


def _validate_upload(upload: UploadFile, label: str) -> None:
    if not upload.filename:
        raise BadRequest(f"Missing {label} filename")


def _ensure_bytes(data: bytes, label: str) -> bytes:
    if not data:
        raise BadRequest(f"{label} is empty")
    if len(data) > settings.max_upload_bytes:
        raise UploadTooLarge(
            f"{label} exceeds {settings.max_upload_bytes} bytes",
            limit=settings.max_upload_bytes,
        )
    return data


async def read_docx_upload(docx: UploadFile = File(...)) -> bytes:
    _validate_upload(docx, "docx")
    return _ensure_bytes(await docx.read(), "docx")
