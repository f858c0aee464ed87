"""Archive accessor - Read and replace named entries of a zipped package."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DOCUMENT_XML_PATH = "word/document.xml"
STYLES_XML_PATH = "word/styles.xml"
NUMBERING_XML_PATH = "word/numbering.xml"
DOCUMENT_RELS_PATH = "word/_rels/document.xml.rels"
FOOTNOTES_XML_PATH = "word/footnotes.xml"
ENDNOTES_XML_PATH = "word/endnotes.xml"
COMMENTS_XML_PATH = "word/comments.xml"

# Zip-bomb guards
MAX_ENTRY_SIZE = 100 * 1024 * 1024
MAX_TOTAL_SIZE = 500 * 1024 * 1024
MAX_COMPRESSION_RATIO = 100
# Small entries are exempt from the ratio check; repetitive XML compresses well
RATIO_CHECK_MIN_SIZE = 1024 * 1024

_DRIVE_LETTER = re.compile(r"^[A-Za-z]:")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")


class ArchiveError(ValueError):
    """Raised when a buffer is not a usable zip package."""


def is_safe_entry_name(name: str) -> bool:
    """Reject absolute paths, parent traversal, backslashes and control chars."""
    if not name or name.startswith("/") or "\\" in name:
        return False
    if _DRIVE_LETTER.match(name) or _CONTROL_CHARS.search(name):
        return False
    return ".." not in name.split("/")


def _open(buffer: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(buffer))
    except zipfile.BadZipFile as exc:
        raise ArchiveError(f"Not a zip package: {exc}") from exc


def _check_entry(info: zipfile.ZipInfo) -> None:
    if not is_safe_entry_name(info.filename):
        raise ArchiveError(f"Unsafe path detected: {info.filename!r}")
    if info.file_size > MAX_ENTRY_SIZE:
        raise ArchiveError(
            f"Entry size exceeds limit: {info.file_size} bytes (max: {MAX_ENTRY_SIZE})"
        )
    if info.compress_size > 0 and info.file_size >= RATIO_CHECK_MIN_SIZE:
        ratio = info.file_size / info.compress_size
        if ratio > MAX_COMPRESSION_RATIO:
            raise ArchiveError(
                f"Compression ratio too high for {info.filename}: {ratio:.2f} "
                f"(max: {MAX_COMPRESSION_RATIO})"
            )


def read_entry(buffer: bytes, path: str) -> Optional[bytes]:
    """Read one entry, or None when the buffer is empty or the entry is missing.

    Raises:
        ArchiveError: If the buffer is not a zip or the entry breaks a limit.
    """
    if not buffer:
        return None
    with _open(buffer) as zf:
        try:
            info = zf.getinfo(path)
        except KeyError:
            return None
        _check_entry(info)
        return zf.read(info)


def list_entries(buffer: bytes) -> List[str]:
    if not buffer:
        return []
    with _open(buffer) as zf:
        return zf.namelist()


def read_all_entries(buffer: bytes) -> Dict[str, bytes]:
    """Read every entry, enforcing the per-entry and total size limits."""
    if not buffer:
        return {}
    entries: Dict[str, bytes] = {}
    total = 0
    with _open(buffer) as zf:
        for info in zf.infolist():
            _check_entry(info)
            total += info.file_size
            if total > MAX_TOTAL_SIZE:
                raise ArchiveError(
                    f"Total uncompressed size exceeds limit (max: {MAX_TOTAL_SIZE})"
                )
            entries[info.filename] = zf.read(info)
    return entries


def replace_entry(buffer: bytes, path: str, data: bytes) -> bytes:
    """Return a copy of the package with one entry's content replaced.

    Entry order and per-entry compression are preserved; the entry is appended
    when it does not exist yet.
    """
    out = io.BytesIO()
    total = 0
    replaced = False
    with _open(buffer) as src, zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for info in src.infolist():
            _check_entry(info)
            total += info.file_size
            if total > MAX_TOTAL_SIZE:
                raise ArchiveError(
                    f"Total uncompressed size exceeds limit (max: {MAX_TOTAL_SIZE})"
                )
            if info.filename == path:
                dst.writestr(info, data, compress_type=info.compress_type)
                replaced = True
            else:
                dst.writestr(info, src.read(info), compress_type=info.compress_type)
        if not replaced:
            dst.writestr(path, data)
    logger.debug(f"Replaced {path} ({len(data)} bytes)")
    return out.getvalue()


def write_package(entries: Dict[str, bytes]) -> bytes:
    """Build a new deflated package from path -> bytes, in the given order."""
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return out.getvalue()
