"""Unit tests for size formatting and filename sanitization."""

import pytest

from cloud_backup.application.dtos.file_record import StorageUsage
from cloud_backup.shared.utils.formatting import format_file_size, sanitize_filename


class TestFormatFileSize:
    """Tests for format_file_size."""

    def test_zero(self) -> None:
        assert format_file_size(0) == "0 Bytes"

    def test_bytes(self) -> None:
        assert format_file_size(512) == "512 Bytes"

    def test_fractional_kilobytes(self) -> None:
        assert format_file_size(1536) == "1.5 KB"

    def test_exact_megabyte(self) -> None:
        assert format_file_size(1048576) == "1 MB"

    def test_two_decimals(self) -> None:
        assert format_file_size(1234567) == "1.18 MB"

    def test_terabytes_cap(self) -> None:
        assert format_file_size(2048 * 1024**4) == "2048 TB"

    def test_negative_raises(self) -> None:
        with pytest.raises(ValueError):
            format_file_size(-1)

    def test_usage_display(self) -> None:
        usage = StorageUsage(owner_id="uidA", total_files=2, total_bytes=3 * 1024 * 1024)
        assert usage.total_size_display == "3 MB"


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_basename_only(self) -> None:
        assert sanitize_filename("report.pdf") == "report.pdf"

    def test_path_stripped(self) -> None:
        assert sanitize_filename("/foo/bar/report.pdf") == "report.pdf"

    def test_windows_path_stripped(self) -> None:
        assert sanitize_filename("C:\\Users\\a\\report.pdf") == "report.pdf"

    def test_null_removed(self) -> None:
        assert sanitize_filename("a\x00b.pdf") == "ab.pdf"

    def test_traversal_reduced_to_basename(self) -> None:
        assert sanitize_filename("../../etc/passwd") == "passwd"

    def test_empty_after_sanitize_raises(self) -> None:
        with pytest.raises(ValueError, match="empty or invalid"):
            sanitize_filename("")

    def test_dots_only_raises(self) -> None:
        with pytest.raises(ValueError, match="empty or invalid"):
            sanitize_filename("..")
