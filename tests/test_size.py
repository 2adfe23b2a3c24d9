"""Tests for size formatting."""

import pytest

from db_command.size import format_size, human_unit, unit_label


class TestFormatSize:
    """Rounding and unit labels."""

    def test_raw_bytes(self) -> None:
        assert format_size(5865472) == "5865472 B"

    @pytest.mark.parametrize(
        "size_format, expected",
        [
            ("b", "5865472 B"),
            ("kb", "5728 KB"),
            ("mb", "6 MB"),
            ("MB", "6 MB"),
            ("MiB", "6 MiB"),
            ("KB", "5866 KB"),
            ("gb", "1 GB"),
        ],
    )
    def test_formats(self, size_format: str, expected: str) -> None:
        assert format_size(5865472, size_format) == expected

    def test_rounds_up(self) -> None:
        assert format_size(1025, "kb") == "2 KB"

    def test_human_readable(self) -> None:
        assert format_size(5865472, human_readable=True) == "6 MB"
        assert format_size(512, human_readable=True) == "512 B"
        assert format_size(0, human_readable=True) == "0 B"

    def test_human_unit(self) -> None:
        assert human_unit(999) == "B"
        assert human_unit(1000) == "KB"
        assert human_unit(2 * 1000**3) == "GB"

    def test_unit_label(self) -> None:
        assert unit_label("kib") == "KiB"
        assert unit_label("tb") == "TB"
