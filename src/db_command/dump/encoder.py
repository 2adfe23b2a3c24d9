"""Encode row values as SQL literals for single-line INSERT statements.

Each value is classified once, when the row is read, into a tagged
``Value``:

- ``NULL``: ``None``
- ``NUMBER``: ints, floats, Decimals and bools
- ``TEXT``: every ``str``, whatever it looks like, and everything else
  (bytes stay bytes, other objects go through ``str``)

NULL and NUMBER values are written as-is.  TEXT values are quoted by the
embedded connection's ``quote`` and then have raw line breaks replaced with
``\\n``/``\\r`` escapes so every INSERT fits on one line of the dump.
"""

import math
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple

Quote = Callable[[str | bytes], str]


class ValueKind(str, Enum):
    """Runtime classification of a column value."""

    NULL = "null"
    NUMBER = "number"
    TEXT = "text"


class Value(NamedTuple):
    """A column value tagged with its kind."""

    kind: ValueKind
    raw: Any


def classify(value: Any) -> Value:
    """Tag a raw driver value as NULL, NUMBER or TEXT."""
    if value is None:
        return Value(ValueKind.NULL, None)
    if isinstance(value, bool):
        return Value(ValueKind.NUMBER, int(value))
    if isinstance(value, int):
        return Value(ValueKind.NUMBER, value)
    if isinstance(value, (float, Decimal)):
        # str() would give "inf"/"nan", which are not SQL literals
        if not math.isfinite(value):
            return Value(ValueKind.TEXT, str(value))
        return Value(ValueKind.NUMBER, value)
    if isinstance(value, str):
        return Value(ValueKind.TEXT, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Value(ValueKind.TEXT, bytes(value))
    return Value(ValueKind.TEXT, str(value))


def classify_row(row: Mapping[str, Any]) -> list[Value]:
    """Classify every value of a row, keeping column order."""
    return [classify(v) for v in row.values()]


def encode_value(value: Value, quote: Quote) -> str:
    """Render one tagged value as a SQL literal.

    Args:
        value: Tagged value from ``classify``.
        quote: The embedded connection's quoting primitive.

    Returns:
        ``NULL``, the bare number, or a quoted literal without raw newlines.
    """
    if value.kind is ValueKind.NULL:
        return "NULL"
    if value.kind is ValueKind.NUMBER:
        return str(value.raw)
    return quote(value.raw).replace("\r", "\\r").replace("\n", "\\n")


def encode_values(values: Iterable[Value], quote: Quote) -> str:
    """Render tagged values as the comma-joined body of ``VALUES (...)``."""
    return ",".join(encode_value(v, quote) for v in values)


def encode_row(row: Mapping[str, Any], quote: Quote) -> str:
    """Classify and render a whole row.

    Example:
        >>> encode_row({"id": 1, "name": None, "title": "O'Brien"}, quote)
        "1,NULL,'O''Brien'"
    """
    return encode_values(classify_row(row), quote)
