"""Search text columns for a string or a regular expression.

Every text column of every selected table is scanned.  A literal search is
case-insensitive and pre-filtered in the database with ``LIKE``; a regex
search reads every row and matches in Python.  Matches are printed with
surrounding context, as::

    wp_posts:post_content
    12:...the quick brown [fox] jumps over...

Usage:
    from db_command.search import SearchOptions, search_tables

    stats = search_tables(backend, ["wp_posts"], "fox", SearchOptions())
"""

import logging
import re
import time

from pydantic import BaseModel, Field
from rich.markup import escape

from db_command import output
from db_command.backends.base import DatabaseBackend
from db_command.errors import DBCommandError
from db_command.escaping import esc_like

logger = logging.getLogger(__name__)

# PCRE modifiers with a Python equivalent; "u" is implied for str patterns
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}

TABLE_COLUMN_STYLE = "bold green"
ID_STYLE = "bold yellow"
MATCH_STYLE = "black on yellow"


class SearchOptions(BaseModel):
    """Options accepted by ``search``."""

    regex: bool = False
    regex_flags: str = ""
    before_context: int = 40
    after_context: int = 40
    table_column_once: bool = False
    one_line: bool = False
    matches_only: bool = False
    stats: bool = False


class SearchStats(BaseModel):
    """Counters reported by ``--stats``."""

    matches: int = 0
    tables: int = 0
    columns: int = 0
    rows: int = 0
    skipped: list[str] = Field(default_factory=list)
    run_time: float = 0.0
    search_time: float = 0.0

    def message(self) -> str:
        def plural(count: int, one: str, many: str) -> str:
            return one if count == 1 else many

        skipped_str = plural(len(self.skipped), "table skipped", "tables skipped")
        if self.skipped:
            skipped_str += ": " + ", ".join(self.skipped)
        return (
            f"Found {self.matches} {plural(self.matches, 'match', 'matches')} "
            f"in {self.run_time:.3f}s ({self.search_time:.3f}s searching). "
            f"Searched {self.tables} {plural(self.tables, 'table', 'tables')}, "
            f"{self.columns} {plural(self.columns, 'column', 'columns')}, "
            f"{self.rows} {plural(self.rows, 'row', 'rows')}. "
            f"{len(self.skipped)} {skipped_str}."
        )


def compile_pattern(needle: str, options: SearchOptions) -> re.Pattern:
    """Compile the search pattern.

    Raises:
        DBCommandError: If the regex or its flags are invalid.
    """
    if not options.regex:
        return re.compile(re.escape(needle), re.IGNORECASE)

    flags = 0
    for flag in options.regex_flags:
        if flag not in _REGEX_FLAGS:
            raise DBCommandError(f"Unsupported regex flag '{flag}'.")
        flags |= _REGEX_FLAGS[flag]

    try:
        return re.compile(needle, flags)
    except re.error as e:
        flags_msg = f"flags '{options.regex_flags}'" if options.regex_flags else "no flags"
        raise DBCommandError(
            f"The regex pattern '{needle}' with {flags_msg} fails: {e}"
        ) from e


def _styled(text: str, style: str) -> str:
    return f"[{style}]{escape(text)}[/]"


def format_matches(
    value: str,
    pattern: re.Pattern,
    before_context: int,
    after_context: int,
) -> tuple[str, int]:
    """Render every match of ``pattern`` in ``value`` with its context.

    The after-context of a match is cut short where the next match begins;
    the next match is then appended to the same fragment.  Separate
    fragments are joined with ``[...]``.

    Returns:
        Tuple of (rich markup line, number of matches).
    """
    matches = list(pattern.finditer(value))
    if not matches:
        return "", 0

    highlight = bool(before_context or after_context)
    bits: list[str] = []
    append_next = False
    last_offset = 0

    for i, match in enumerate(matches):
        start, end = match.span()
        shown = _styled(match.group(0), MATCH_STYLE) if highlight else escape(match.group(0))
        before = ""
        after = ""
        shortened = False

        if before_context and start and not append_next:
            before = value[last_offset:start][-before_context:]
        if after_context:
            after = value[end : end + after_context]
            if i + 1 < len(matches) and end + len(after) > matches[i + 1].start():
                after = after[: matches[i + 1].start() - end]
                shortened = True

        if append_next:
            bits[-1] += shown + escape(after)
        else:
            bits.append(escape(before) + shown + escape(after))
        append_next = shortened
        last_offset = start

    return " [...] ".join(bits), len(matches)


def search_tables(
    backend: DatabaseBackend,
    tables: list[str],
    needle: str,
    options: SearchOptions,
) -> SearchStats:
    """Search the text columns of ``tables`` and print every matching row.

    Args:
        backend: Backend to read from.
        tables: Tables to search, already resolved.
        needle: Literal string or regular expression.
        options: Output and matching options.

    Returns:
        SearchStats; printed by the caller when ``--stats`` is given.

    Raises:
        DBCommandError: If the pattern is invalid or a table does not exist.
    """
    start_run = time.perf_counter()
    pattern = compile_pattern(needle, options)
    like = None if options.regex else f"%{esc_like(needle)}%"

    stats = SearchStats(tables=len(tables))
    start_search = time.perf_counter()

    for table in tables:
        columns = backend.get_columns(table)
        if not columns:
            raise DBCommandError(f"No such table '{table}'.")

        primary_keys = [c.field for c in columns if c.key == "PRI"]
        text_columns = [c.field for c in columns if c.is_text()]

        if not text_columns:
            if options.stats:
                stats.skipped.append(table)
            elif not table.endswith("_term_relationships"):
                if primary_keys:
                    output.warning(f"No text columns for table '{table}' - skipped.")
                else:
                    output.warning(f"No primary key or text columns for table '{table}' - skipped.")
            continue

        stats.columns += len(text_columns)
        primary_key = primary_keys[0] if primary_keys else None
        if primary_key is None:
            output.warning(f"No primary key for table '{table}'. No row ids will be outputted.")

        for column in text_columns:
            _search_column(backend, table, primary_key, column, pattern, like, options, stats)

    end = time.perf_counter()
    stats.run_time = end - start_run
    stats.search_time = end - start_search
    logger.debug("Search finished: %s", stats.message())
    return stats


def _search_column(
    backend: DatabaseBackend,
    table: str,
    primary_key: str | None,
    column: str,
    pattern: re.Pattern,
    like: str | None,
    options: SearchOptions,
    stats: SearchStats,
) -> None:
    header = _styled(f"{table}:{column}", TABLE_COLUMN_STYLE)
    header_shown = False

    for pk_value, value in backend.select_text_column(table, primary_key, column, like):
        stats.rows += 1
        if value is None:
            continue
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")

        line, count = format_matches(
            str(value), pattern, options.before_context, options.after_context
        )
        if not count:
            continue
        stats.matches += count

        if (
            not options.matches_only
            and not options.one_line
            and not (options.table_column_once and header_shown)
        ):
            output.console.print(header)
            header_shown = True

        pk_str = f"{_styled(str(pk_value), ID_STYLE)}:" if primary_key else ""
        if options.matches_only:
            output.console.print(line)
        elif options.one_line:
            output.console.print(f"{header}:{pk_str}{line}")
        else:
            output.console.print(f"{pk_str}{line}")
