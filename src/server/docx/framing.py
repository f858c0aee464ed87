"""Length-prefixed framing for progressive slice streams.

Each frame is a 4-byte big-endian length followed by one complete .docx
package. A zero length terminates the stream.
"""

from __future__ import annotations

import logging
import struct
from typing import Iterator, List

from docxstream.stream import iter_progressive_slices

logger = logging.getLogger(__name__)

FRAME_HEADER = struct.Struct(">I")
END_OF_STREAM = FRAME_HEADER.pack(0)


def encode_frame(payload: bytes) -> bytes:
    if not payload:
        raise ValueError("Cannot frame an empty payload; zero length marks end of stream")
    return FRAME_HEADER.pack(len(payload)) + payload


def iter_framed_slices(source: bytes, step: int = 1) -> Iterator[bytes]:
    """Frames of growing slices of ``source`` followed by the terminator."""
    frames = 0
    for _, package in iter_progressive_slices(source, step):
        frames += 1
        yield encode_frame(package)
    logger.debug(f"Streamed {frames} frames (step={step})")
    yield END_OF_STREAM


def decode_frames(data: bytes) -> List[bytes]:
    """Split a complete framed stream back into packages.

    Raises:
        ValueError: If the stream is truncated or lacks the terminator.
    """
    packages: List[bytes] = []
    offset = 0
    while True:
        if offset + FRAME_HEADER.size > len(data):
            raise ValueError("Stream ended without terminator")
        (length,) = FRAME_HEADER.unpack_from(data, offset)
        offset += FRAME_HEADER.size
        if length == 0:
            return packages
        if offset + length > len(data):
            raise ValueError(f"Frame of {length} bytes truncated at offset {offset}")
        packages.append(data[offset:offset + length])
        offset += length
