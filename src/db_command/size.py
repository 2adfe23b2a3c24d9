"""Byte-size formatting for ``size``."""

import math

KB_IN_BYTES = 1024
MB_IN_BYTES = 1024 * KB_IN_BYTES
GB_IN_BYTES = 1024 * MB_IN_BYTES
TB_IN_BYTES = 1024 * GB_IN_BYTES

# Upper-case ISO units are decimal; lower-case and *iB units are binary
DIVISORS = {
    "b": 1,
    "B": 1,
    "kb": KB_IN_BYTES,
    "KiB": KB_IN_BYTES,
    "KB": 1000,
    "mb": MB_IN_BYTES,
    "MiB": MB_IN_BYTES,
    "MB": 1000**2,
    "gb": GB_IN_BYTES,
    "GiB": GB_IN_BYTES,
    "GB": 1000**3,
    "tb": TB_IN_BYTES,
    "TiB": TB_IN_BYTES,
    "TB": 1000**4,
}

SIZE_FORMATS = list(DIVISORS)

_HUMAN_UNITS = ["B", "KB", "MB", "GB", "TB"]


def human_unit(size_bytes: int) -> str:
    """Largest decimal unit that keeps the value at or above 1."""
    if size_bytes <= 0:
        return "B"
    index = int(math.floor(math.log(size_bytes) / math.log(1000)))
    if 0 <= index < len(_HUMAN_UNITS):
        return _HUMAN_UNITS[index]
    return "B"


def unit_label(size_format: str) -> str:
    """Display label: upper-cased, with the ``i`` of binary units kept lower-case."""
    label = size_format.upper()
    if label.endswith("IB"):
        label = label[:-2] + "iB"
    return label


def format_size(size_bytes: int, size_format: str | None = None, human_readable: bool = False) -> str:
    """Render a size for display.

    Without a format the raw byte count is shown with a ``B`` suffix.  With a
    format (or ``human_readable``) the value is divided, rounded up, and
    labelled.

    Example:
        >>> format_size(5865472)
        '5865472 B'
        >>> format_size(5865472, "mb")
        '6 MB'
        >>> format_size(5865472, human_readable=True)
        '6 MB'
    """
    if not size_format and not human_readable:
        return f"{size_bytes} B"

    if human_readable:
        size_format = human_unit(size_bytes)

    divisor = DIVISORS.get(size_format, 1)
    return f"{math.ceil(size_bytes / divisor)} {unit_label(size_format)}"
