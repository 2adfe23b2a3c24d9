"""Console output shared by the CLI and the backends.

Results and success lines go to stdout, warnings and errors to stderr.
Messages are plain text: user-supplied values are escaped before they
reach rich's markup parser.
"""

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

console = Console(soft_wrap=True, highlight=False, emoji=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False, emoji=False)

FORMATS = ["table", "csv", "json"]


def line(message: str) -> None:
    """Print a message verbatim (porcelain output, listings)."""
    console.print(message, markup=False)


def success(message: str) -> None:
    console.print(f"[bold green]Success:[/bold green] {escape(message)}")


def warning(message: str) -> None:
    err_console.print(f"[bold yellow]Warning:[/bold yellow] {escape(message)}")


def error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def display_items(items: Sequence[dict[str, Any]], fields: list[str], fmt: str = "table") -> None:
    """Print rows as a rich table, CSV, or a JSON array.

    Args:
        items: Rows keyed by field name.
        fields: Columns to show, in order.
        fmt: ``table``, ``csv`` or ``json``.
    """
    if fmt == "json":
        line(json.dumps([{f: item.get(f) for f in fields} for item in items], default=str))
        return

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(fields)
        for item in items:
            writer.writerow([_cell(item.get(f)) for f in fields])
        line(buffer.getvalue().rstrip("\n"))
        return

    table = Table(show_header=True, header_style="bold")
    for field in fields:
        table.add_column(Text(field))
    for item in items:
        table.add_row(*(Text(_cell(item.get(f))) for f in fields))
    console.print(table)
