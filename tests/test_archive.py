"""Tests for zip package access."""

import io
import zipfile

import pytest

from docxstream.docx_parser.archive import (
    ArchiveError,
    MAX_COMPRESSION_RATIO,
    is_safe_entry_name,
    list_entries,
    read_all_entries,
    read_entry,
    replace_entry,
    write_package,
)


def _zip(entries, compression=zipfile.ZIP_DEFLATED):
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return out.getvalue()


class TestReadEntry:
    """Tests for reading single entries."""

    def test_reads_existing_entry(self):
        buffer = _zip({"word/document.xml": b"<doc/>"})
        assert read_entry(buffer, "word/document.xml") == b"<doc/>"

    def test_missing_entry_is_none(self):
        buffer = _zip({"word/document.xml": b"<doc/>"})
        assert read_entry(buffer, "word/styles.xml") is None

    def test_empty_buffer_is_none(self):
        assert read_entry(b"", "word/document.xml") is None
        assert list_entries(b"") == []

    def test_not_a_zip(self):
        with pytest.raises(ArchiveError):
            read_entry(b"definitely not a zip", "word/document.xml")

    def test_compression_bomb_rejected(self):
        """Highly compressible large entries are refused."""
        buffer = _zip({"word/document.xml": b"\0" * (4 * 1024 * 1024)})
        with pytest.raises(ArchiveError, match="ratio"):
            read_entry(buffer, "word/document.xml")

    def test_small_entries_skip_ratio_check(self):
        data = b"a" * (MAX_COMPRESSION_RATIO * 1000)
        buffer = _zip({"word/document.xml": data})
        assert read_entry(buffer, "word/document.xml") == data


class TestEntryNames:
    """Tests for zip-slip protection."""

    @pytest.mark.parametrize(
        "name",
        ["../evil.xml", "/etc/passwd", "word\\document.xml", "C:/x.xml", "word/../../x", "bad\x01name"],
    )
    def test_unsafe_names(self, name):
        assert not is_safe_entry_name(name)

    def test_safe_names(self):
        assert is_safe_entry_name("word/document.xml")
        assert is_safe_entry_name("[Content_Types].xml")

    def test_read_all_rejects_traversal(self):
        buffer = _zip({"word/document.xml": b"<doc/>", "../outside.txt": b"x"})
        with pytest.raises(ArchiveError, match="Unsafe path"):
            read_all_entries(buffer)


class TestReplaceEntry:
    """Tests for rewriting one entry of a package."""

    def test_other_entries_unchanged(self):
        buffer = _zip({"a.xml": b"A", "word/document.xml": b"old", "z.bin": b"\x00\x01"})
        updated = replace_entry(buffer, "word/document.xml", b"new")

        assert list_entries(updated) == ["a.xml", "word/document.xml", "z.bin"]
        assert read_entry(updated, "word/document.xml") == b"new"
        assert read_entry(updated, "a.xml") == b"A"
        assert read_entry(updated, "z.bin") == b"\x00\x01"

    def test_compression_preserved(self):
        buffer = _zip({"word/document.xml": b"old", "media/image1.png": b"png"}, zipfile.ZIP_STORED)
        updated = replace_entry(buffer, "word/document.xml", b"new")

        with zipfile.ZipFile(io.BytesIO(updated)) as zf:
            assert all(info.compress_type == zipfile.ZIP_STORED for info in zf.infolist())

    def test_missing_entry_appended(self):
        buffer = _zip({"a.xml": b"A"})
        updated = replace_entry(buffer, "word/document.xml", b"doc")
        assert list_entries(updated) == ["a.xml", "word/document.xml"]

    def test_write_package_order(self):
        data = write_package({"b.xml": b"B", "a.xml": b"A"})
        assert list_entries(data) == ["b.xml", "a.xml"]
