"""Tests for dump value classification and literal encoding."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from db_command.dump.encoder import (
    Value,
    ValueKind,
    classify,
    encode_row,
    encode_value,
)
from db_command.sqlite.translator import NativeConnection


@pytest.fixture
def quote():
    return NativeConnection(MagicMock()).quote


class TestClassify:
    """Runtime tagging of driver values."""

    @pytest.mark.parametrize(
        "raw, kind",
        [
            (None, ValueKind.NULL),
            (42, ValueKind.NUMBER),
            (-1.5, ValueKind.NUMBER),
            (Decimal("1.10"), ValueKind.NUMBER),
            ("42", ValueKind.TEXT),
            ("1.50", ValueKind.TEXT),
            ("-0", ValueKind.TEXT),
            ("00123", ValueKind.TEXT),
            (" 12", ValueKind.TEXT),
            ("12abc", ValueKind.TEXT),
            ("", ValueKind.TEXT),
            ("hello", ValueKind.TEXT),
        ],
    )
    def test_kinds(self, raw, kind) -> None:
        assert classify(raw).kind is kind

    def test_bool_becomes_integer(self) -> None:
        assert classify(True) == Value(ValueKind.NUMBER, 1)
        assert classify(False) == Value(ValueKind.NUMBER, 0)

    def test_non_finite_float_is_text(self) -> None:
        """inf/nan are not SQL literals, so they are quoted."""
        assert classify(float("inf")) == Value(ValueKind.TEXT, "inf")
        assert classify(float("nan")).kind is ValueKind.TEXT

    def test_bytes_stay_bytes(self) -> None:
        assert classify(memoryview(b"\x01\x02")) == Value(ValueKind.TEXT, b"\x01\x02")

    def test_other_objects_use_str(self) -> None:
        value = classify(datetime(2024, 1, 2, 3, 4, 5))
        assert value == Value(ValueKind.TEXT, "2024-01-02 03:04:05")


class TestEncodeValue:
    """SQL literal rendering."""

    def test_null(self, quote) -> None:
        assert encode_value(classify(None), quote) == "NULL"

    def test_number_unquoted(self, quote) -> None:
        assert encode_value(classify(42), quote) == "42"
        assert encode_value(classify(Decimal("1.10")), quote) == "1.10"

    def test_text_quoted(self, quote) -> None:
        assert encode_value(classify("O'Brien"), quote) == "'O''Brien'"

    @pytest.mark.parametrize("raw", ["00123", "1.50", "1e5", "-0", "12345678901234567890"])
    def test_numeric_looking_text_quoted(self, quote, raw: str) -> None:
        """Strings keep their exact spelling, whatever they look like."""
        assert encode_value(classify(raw), quote) == f"'{raw}'"

    def test_backslash_doubled(self, quote) -> None:
        assert encode_value(classify("C:\\path"), quote) == "'C:\\\\path'"

    def test_line_breaks_escaped(self, quote) -> None:
        """Raw line breaks never reach the dump."""
        encoded = encode_value(classify("a\nb\r\nc"), quote)
        assert encoded == "'a\\nb\\r\\nc'"
        assert "\n" not in encoded
        assert "\r" not in encoded

    def test_bytes_hex_literal(self, quote) -> None:
        assert encode_value(classify(b"\x00\xff"), quote) == "X'00FF'"

    def test_nul_text_cast_from_hex(self, quote) -> None:
        assert encode_value(classify("a\x00b"), quote) == "CAST(X'610062' AS TEXT)"


class TestEncodeRow:
    def test_column_order_kept(self, quote) -> None:
        row = {"id": 1, "name": None, "title": "O'Brien", "zip": "00501"}
        assert encode_row(row, quote) == "1,NULL,'O''Brien','00501'"
