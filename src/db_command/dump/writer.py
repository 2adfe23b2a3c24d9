"""Stream a SQL dump of the embedded database.

For every table the translator lists, in the order it lists them:

1. a ``Table structure`` comment, ``DROP TABLE IF EXISTS`` and the
   translator's ``CREATE TABLE`` rendering;
2. if the table has rows, a ``Dumping data`` comment and one single-line
   ``INSERT INTO ... VALUES (...)`` per row, read from a forward-only
   cursor and written as soon as it is built.

The dump ends with a ``-- Dump completed on <timestamp>`` comment.

Usage:
    from db_command.dump.writer import export_database
    from db_command.dump.models import ExportOptions

    with SQLiteTranslator(path) as translator:
        result = export_database(translator, "backup.sql", ExportOptions())
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TextIO

from db_command.dump.encoder import encode_row
from db_command.dump.models import ExportOptions, ExportResult
from db_command.errors import DumpError
from db_command.escaping import esc_sql_ident
from db_command.sqlite.translator import NativeConnection, SQLiteTranslator

logger = logging.getLogger(__name__)


def dump_comment(comment: str) -> str:
    """Three-line ``--`` comment block used as a section header."""
    return "\n".join(["--", f"-- {comment}", "--"])


class DumpWriter:
    """Writes DROP/CREATE/INSERT statements for the tables passing the filter.

    Args:
        translator: Open translator for the embedded database.
        options: Export options (include/exclude lists).
    """

    def __init__(self, translator: SQLiteTranslator, options: ExportOptions) -> None:
        self._translator = translator
        self._native: NativeConnection = translator.get_underlying_connection()
        self._filter = options.table_filter()
        self.tables_written = 0
        self.rows_written = 0

    def write(self, handle: TextIO) -> int:
        """Write the whole dump to ``handle``.

        Returns:
            Number of tables written.
        """
        for table in self._translator.query("SHOW TABLES"):
            name = table["name"]
            if not self._filter.includes(name):
                logger.debug("Skipping table %s", name)
                continue

            self._write_create_table(handle, name)
            self._write_inserts(handle, name)
            self.tables_written += 1

        handle.write(f"-- Dump completed on {datetime.now(timezone.utc).isoformat()}\n")
        return self.tables_written

    def _write_create_table(self, handle: TextIO, table: str) -> None:
        handle.write(dump_comment(f"Table structure for table {esc_sql_ident(table)}") + "\n\n")
        handle.write(f"DROP TABLE IF EXISTS {esc_sql_ident(table)};\n")
        handle.write(self.get_create_statement(table) + ";\n\n")

    def get_create_statement(self, table: str) -> str:
        """The translator's CREATE TABLE rendering, without a trailing ``;``."""
        create = self._translator.query(f"SHOW CREATE TABLE {esc_sql_ident(table)}")
        return create[0]["Create Table"].rstrip().rstrip(";")

    def _write_inserts(self, handle: TextIO, table: str) -> None:
        if self._native.count_rows(table) == 0:
            return

        handle.write(dump_comment(f"Dumping data for table {esc_sql_ident(table)}") + "\n\n")
        for statement in self.iter_insert_statements(table):
            handle.write(statement + "\n")
            self.rows_written += 1
        handle.write("\n")

    def iter_insert_statements(self, table: str) -> Iterator[str]:
        """Yield one ``INSERT`` per row, streaming from the cursor."""
        ident = esc_sql_ident(table)
        quote = self._native.quote
        for row in self._native.stream_table(table):
            yield f"INSERT INTO {ident} VALUES ({encode_row(row, quote)});"


@contextmanager
def open_destination(destination: str) -> Iterator[TextIO]:
    """Open the dump destination; ``-`` is standard output.

    Raises:
        DumpError: If the file cannot be opened for writing.
    """
    if destination == "-":
        yield sys.stdout
        sys.stdout.flush()
        return

    try:
        handle = open(destination, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise DumpError(f"Unable to open file: {destination}") from e
    with handle:
        yield handle


def export_database(
    translator: SQLiteTranslator,
    destination: str,
    options: ExportOptions,
) -> ExportResult:
    """Export the embedded database to ``destination``.

    Args:
        translator: Open translator for the embedded database.
        destination: Output file path, or ``-`` for standard output.
        options: Export options.

    Returns:
        ExportResult with table and row counts.

    Raises:
        DumpError: If the destination cannot be opened.
        QueryError: If the engine fails while listing or reading tables.
    """
    writer = DumpWriter(translator, options)
    with open_destination(destination) as handle:
        writer.write(handle)

    logger.debug(
        "Exported %d tables (%d rows) to %s",
        writer.tables_written,
        writer.rows_written,
        destination,
    )
    return ExportResult(
        destination=destination,
        tables_written=writer.tables_written,
        rows_written=writer.rows_written,
    )
