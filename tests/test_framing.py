"""Tests for the length-prefixed slice stream."""

import struct

import pytest

from docxstream.stream import slice_docx
from server.docx.framing import END_OF_STREAM, decode_frames, encode_frame, iter_framed_slices


class TestFraming:
    """Tests for frame encoding."""

    def test_encode_frame(self):
        frame = encode_frame(b"abc")
        assert frame[:4] == struct.pack(">I", 3)
        assert frame[4:] == b"abc"

    def test_empty_payload_rejected(self):
        with pytest.raises(ValueError):
            encode_frame(b"")

    def test_terminator(self):
        assert END_OF_STREAM == b"\x00\x00\x00\x00"

    def test_stream_of_slices(self, make_docx):
        source = make_docx("".join(f"<w:p><w:r><w:t>{i}</w:t></w:r></w:p>" for i in range(5)))
        stream = b"".join(iter_framed_slices(source, step=2))

        assert stream.endswith(END_OF_STREAM)
        packages = decode_frames(stream)
        assert packages == [slice_docx(source, 2), slice_docx(source, 4), slice_docx(source, 5)]

    def test_truncated_stream(self):
        with pytest.raises(ValueError):
            decode_frames(encode_frame(b"abc"))
        with pytest.raises(ValueError):
            decode_frames(struct.pack(">I", 10) + b"abc")
