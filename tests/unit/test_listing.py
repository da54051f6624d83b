"""Unit tests for directory listing parsing."""

import pytest

from ftp_batch.ftp.listing import (
    DirectoryEntry,
    FileType,
    is_listable_name,
    parse_mlsd_timestamp,
)


class TestFromMlsd:
    """Tests for DirectoryEntry.from_mlsd()."""

    def test_file_entry(self):
        """Test a regular file line."""
        entry = DirectoryEntry.from_mlsd(
            "report.csv",
            {"type": "file", "size": "1024", "modify": "20240102030405", "unix.mode": "0644"},
        )

        assert entry.name == "report.csv"
        assert entry.type == FileType.FILE
        assert entry.size == 1024
        assert entry.modified_at == "2024-01-02T03:04:05Z"
        assert entry.raw_modified_at == "20240102030405"
        assert entry.permissions == "0644"

    def test_directory_entry(self):
        """Test a directory line."""
        entry = DirectoryEntry.from_mlsd("sub", {"type": "dir", "sizd": "4096"})

        assert entry.is_directory
        assert entry.size == 4096

    def test_fact_names_are_case_insensitive(self):
        """Test that servers sending capitalized facts are understood."""
        entry = DirectoryEntry.from_mlsd("a", {"Type": "File", "Size": "3"})

        assert entry.is_file
        assert entry.size == 3

    def test_missing_facts(self):
        """Test defaults when the server sends no facts."""
        entry = DirectoryEntry.from_mlsd("odd", {})

        assert entry.type == FileType.UNKNOWN
        assert entry.size == 0
        assert entry.modified_at is None


class TestFromUnixLine:
    """Tests for DirectoryEntry.from_unix_line()."""

    def test_file_line(self):
        """Test a regular file line."""
        entry = DirectoryEntry.from_unix_line(
            "-rw-r--r--   1 owner group    2048 Jan  1 12:00 notes.txt"
        )

        assert entry.name == "notes.txt"
        assert entry.type == FileType.FILE
        assert entry.size == 2048
        assert entry.raw_modified_at == "Jan  1 12:00"
        assert entry.permissions == "rw-r--r--"
        assert entry.user == "owner"
        assert entry.group == "group"

    def test_directory_line_with_year(self):
        """Test a directory line carrying a year instead of a time."""
        entry = DirectoryEntry.from_unix_line(
            "drwxr-xr-x   2 root root 4096 Mar 15  2023 archive"
        )

        assert entry.is_directory
        assert entry.name == "archive"

    def test_name_with_spaces(self):
        """Test that names may contain spaces."""
        entry = DirectoryEntry.from_unix_line(
            "-rw-r--r-- 1 u g 10 Feb  3 09:15 my file.txt"
        )

        assert entry.name == "my file.txt"

    def test_symlink_target(self):
        """Test that symlink targets are split from the name."""
        entry = DirectoryEntry.from_unix_line(
            "lrwxrwxrwx 1 u g 7 Feb  3 09:15 latest -> v2.0.0"
        )

        assert entry.type == FileType.SYMBOLIC_LINK
        assert entry.name == "latest"
        assert entry.link == "v2.0.0"

    @pytest.mark.parametrize("line", ["total 12", "", "garbage line"])
    def test_unparseable_lines(self, line):
        """Test that summary and unknown lines are skipped."""
        assert DirectoryEntry.from_unix_line(line) is None


class TestHelpers:
    """Tests for module helpers."""

    def test_to_dict(self):
        """Test the JSON shape of an entry."""
        data = DirectoryEntry(name="a.txt", type=FileType.FILE, size=1).to_dict()

        assert data["name"] == "a.txt"
        assert data["type"] == "file"
        assert data["size"] == 1
        assert "modifiedAt" in data

    @pytest.mark.parametrize("value,expected", [
        ("20240102030405", "2024-01-02T03:04:05Z"),
        ("20240102030405.123", "2024-01-02T03:04:05Z"),
        ("", None),
        ("not-a-date", None),
    ])
    def test_parse_mlsd_timestamp(self, value, expected):
        """Test MLSD timestamp conversion."""
        assert parse_mlsd_timestamp(value) == expected

    @pytest.mark.parametrize("name,expected", [(".", False), ("..", False), ("", False), ("a", True)])
    def test_is_listable_name(self, name, expected):
        """Test filtering of pseudo entries."""
        assert is_listable_name(name) is expected
