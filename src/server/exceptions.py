"""Shared API exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class AppError(Exception):
    message: str
    status_code: int = 400
    code: str = "app_error"
    headers: Optional[dict[str, str]] = None


class BadRequest(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=400, code="bad_request")


class InvalidDocument(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=422, code="invalid_document")


class UploadTooLarge(AppError):
    def __init__(self, message: str, limit: int) -> None:
        super().__init__(
            message=message,
            status_code=413,
            code="upload_too_large",
            headers={"X-Max-Upload-Bytes": str(limit)},
        )
