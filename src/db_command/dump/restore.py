"""Restore a SQL dump into the embedded database.

Statements come from the splitter one at a time and go straight to the
translator.  A statement that fails is reported through ``on_warning`` and
skipped; the rest of the dump still runs.

Usage:
    from db_command.dump.restore import import_dump

    with SQLiteTranslator(path) as translator:
        result = import_dump(translator, "backup.sql", on_warning=print)
        print(result.failed_statements)
"""

import logging
import os
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TextIO

from db_command.dump.models import ImportResult
from db_command.dump.splitter import iter_statements
from db_command.errors import DumpError, QueryError
from db_command.sqlite.translator import SQLiteTranslator

logger = logging.getLogger(__name__)


@contextmanager
def open_source(source: str) -> Iterator[TextIO]:
    """Open the dump source; ``-`` is standard input.

    Raises:
        DumpError: If the file is missing or not readable.
    """
    if source == "-":
        yield sys.stdin
        return

    if not os.path.isfile(source) or not os.access(source, os.R_OK):
        raise DumpError(f"Import file missing or not readable: {source}")
    try:
        handle = open(source, encoding="utf-8")
    except OSError as e:
        raise DumpError(f"Unable to open file: {source}") from e
    with handle:
        yield handle


def execute_statements(
    translator: SQLiteTranslator,
    lines: TextIO,
    on_warning: Callable[[str], None] | None = None,
) -> tuple[int, list[str]]:
    """Run every statement read from ``lines``.

    Returns:
        Tuple of (statements executed successfully, failed statements).
    """
    executed = 0
    failed: list[str] = []
    for statement in iter_statements(lines):
        try:
            translator.query(statement)
        except QueryError as e:
            logger.debug("Statement failed: %s", e)
            failed.append(statement)
            if on_warning is not None:
                on_warning(f"Could not execute statement: {statement}")
            continue
        executed += 1
    return executed, failed


def import_dump(
    translator: SQLiteTranslator,
    source: str,
    on_warning: Callable[[str], None] | None = None,
) -> ImportResult:
    """Execute the statements of a dump file against the embedded database.

    Args:
        translator: Open translator for the embedded database.
        source: Dump file path, or ``-`` for standard input.
        on_warning: Called with a message for every failed statement.

    Returns:
        ImportResult naming the source (``STDIN`` for ``-``).

    Raises:
        DumpError: If the source cannot be read or is not valid UTF-8.
    """
    with open_source(source) as handle:
        try:
            executed, failed = execute_statements(translator, handle, on_warning)
        except UnicodeDecodeError as e:
            raise DumpError(f"Unable to read file: {source}: not valid UTF-8") from e

    logger.debug("Executed %d statements, %d failed", executed, len(failed))
    return ImportResult(
        source="STDIN" if source == "-" else source,
        statements_executed=executed,
        failed_statements=failed,
    )
