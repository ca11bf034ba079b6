"""Unit tests for the LIST output parser and FileSystemEntry."""

from datetime import datetime

import pytest

from whisper_ftp.ftp.listing import (
    FileSystemEntry,
    join_remote,
    parse_list_line,
    parse_listing,
    parse_timestamp,
)


NOW = datetime(2024, 6, 15, 12, 0)


class TestParseListLine:
    """Tests for parse_list_line()."""

    def test_regular_file(self):
        """Test a typical Unix file line."""
        entry = parse_list_line(
            "-rw-r--r--   1 owner group     1024 Jan 05 12:30 report.pdf", "/docs"
        )
        assert entry is not None
        assert entry.name == "report.pdf"
        assert entry.path == "/docs/report.pdf"
        assert entry.is_directory is False
        assert entry.size == 1024
        assert entry.type == ".pdf"
        assert entry.modified.month == 1
        assert entry.modified.day == 5
        assert entry.modified.hour == 12
        assert entry.modified.minute == 30

    def test_directory_with_year(self):
        """Test a directory line with a year instead of a time."""
        entry = parse_list_line(
            "drwxr-xr-x   2 owner group     4096 Mar 10 2022 archive", "/"
        )
        assert entry.is_directory is True
        assert entry.size == 0
        assert entry.type == "Directory"
        assert entry.path == "/archive"
        assert entry.modified == datetime(2022, 3, 10)
        assert entry.modified_is_exact is True

    def test_root_directory_has_single_slash(self):
        """Test paths are joined with exactly one '/'."""
        entry = parse_list_line("-rw-r--r-- 1 o g 10 Jan 05 2023 a.txt", "/")
        assert entry.path == "/a.txt"

    def test_too_few_tokens(self):
        """Test lines with fewer than four tokens are rejected."""
        assert parse_list_line("total 12", "/") is None
        assert parse_list_line("", "/") is None

    def test_non_numeric_size_defaults_to_zero(self):
        """Test a bad size field does not reject the line."""
        entry = parse_list_line("-rw-r--r-- 1 owner group big Jan 05 2023 file.bin", "/")
        assert entry is not None
        assert entry.size == 0

    def test_unparseable_date_falls_back(self):
        """Test the current time is used when no date format matches."""
        entry = parse_list_line("-rw-r--r-- 1 owner group 5 xx yy zz odd.txt", "/")
        assert entry is not None
        assert entry.modified_is_exact is False

    def test_file_without_extension(self):
        """Test type label of a file with no extension."""
        entry = parse_list_line("-rw-r--r-- 1 o g 10 Jan 05 2023 Makefile", "/src")
        assert entry.type == ""

    def test_name_is_last_token(self):
        """Test names with spaces keep only the final word."""
        entry = parse_list_line("-rw-r--r-- 1 o g 10 Jan 05 2023 my file.txt", "/")
        assert entry.name == "file.txt"


class TestParseTimestamp:
    """Tests for parse_timestamp()."""

    def test_time_uses_current_year(self):
        """Test 'Mon DD HH:MM' gets the current year."""
        stamp, exact = parse_timestamp("x x x x x Feb 03 08:15 n".split(), NOW)
        assert stamp == datetime(2024, 2, 3, 8, 15)
        assert exact is True

    def test_leap_day_without_year(self):
        """Test Feb 29 parses in a leap year."""
        stamp, _ = parse_timestamp("x x x x x Feb 29 08:15 n".split(), NOW)
        assert stamp == datetime(2024, 2, 29, 8, 15)

    def test_day_first_date(self):
        """Test the 'DD Mon YYYY' form."""
        stamp, exact = parse_timestamp("x x x x x 02 Nov 2023 n".split(), NOW)
        assert exact is True
        assert stamp == datetime(2023, 11, 2)

    def test_fallback(self):
        """Test the reference time is returned when nothing parses."""
        stamp, exact = parse_timestamp("a b c d e".split(), NOW)
        assert stamp == NOW
        assert exact is False


class TestParseListing:
    """Tests for parse_listing()."""

    def test_skips_special_and_invalid_lines(self):
        """Test '.', '..' and garbage lines are left out."""
        lines = [
            "total 8",
            "drwxr-xr-x 2 o g 4096 Jan 01 2024 .",
            "drwxr-xr-x 2 o g 4096 Jan 01 2024 ..",
            "drwxr-xr-x 2 o g 4096 Jan 01 2024 photos",
            "-rw-r--r-- 1 o g 2048 Jan 02 2024 notes.txt",
        ]
        entries = parse_listing(lines, "/home")

        assert [e.name for e in entries] == ["photos", "notes.txt"]
        assert entries[0].is_directory is True
        assert entries[1].path == "/home/notes.txt"

    def test_empty_listing(self):
        """Test an empty directory yields an empty list."""
        assert parse_listing([], "/") == []


class TestFileSystemEntry:
    """Tests for FileSystemEntry."""

    def test_directory_size_forced_to_zero(self):
        """Test directories always report size 0."""
        entry = FileSystemEntry(name="d", path="/d", is_directory=True, size=4096)
        assert entry.size == 0

    def test_parent_path(self):
        """Test parent_path uses the parent entry when present."""
        parent = FileSystemEntry(name="a", path="/a", is_directory=True)
        child = FileSystemEntry(name="b.txt", path="/a/b.txt", parent=parent)
        orphan = FileSystemEntry(name="c.txt", path="/x/y/c.txt")

        assert child.parent_path == "/a"
        assert orphan.parent_path == "/x/y"

    def test_relative_to(self):
        """Test relative paths drop the base and leading separators."""
        entry = FileSystemEntry(name="c.txt", path="/data/sub/c.txt")
        assert entry.relative_to("/data") == "sub/c.txt"

    def test_from_local_path(self, tmp_path):
        """Test describing a local file and directory."""
        file_path = tmp_path / "local.bin"
        file_path.write_bytes(b"12345")

        file_entry = FileSystemEntry.from_local_path(file_path)
        dir_entry = FileSystemEntry.from_local_path(tmp_path)

        assert file_entry.size == 5
        assert file_entry.type == ".bin"
        assert dir_entry.is_directory is True

    def test_from_missing_local_path(self, tmp_path):
        """Test a missing local path raises OSError."""
        with pytest.raises(OSError):
            FileSystemEntry.from_local_path(tmp_path / "missing")


def test_join_remote():
    """Test join_remote collapses trailing slashes."""
    assert join_remote("/", "a") == "/a"
    assert join_remote("/pub/", "a") == "/pub/a"
    assert join_remote("/pub", "a") == "/pub/a"
