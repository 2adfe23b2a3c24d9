"""Split a SQL dump into individual statements.

The splitter is line-oriented first and character-oriented second:

- Blank lines and lines starting with ``--`` or ``#`` are skipped.  These
  markers are only honored at the start of a line.
- A line starting with ``/*`` opens a block comment that runs until a line
  containing ``*/``.  Anything after ``*/`` on that line is discarded too.
- Inside a kept line, single and double quotes toggle a flag each, but only
  while the other kind of quote is closed.  A character following an
  unescaped backslash is copied verbatim and never toggles a quote.
- A ``;`` outside both kinds of quotes ends the statement.

This is not a SQL parser: dollar-quoting, nested block comments, mid-line
comments and backtick-quoted identifiers containing ``;`` are not handled.

Usage:
    from db_command.dump.splitter import iter_statements

    with open("dump.sql", encoding="utf-8") as f:
        for statement in iter_statements(f):
            print(statement)
"""

from collections.abc import Iterable, Iterator


def _is_skipped_line(line: str) -> bool:
    """Blank lines and line-start ``--``/``#`` comments never reach the buffer."""
    return not line or line.startswith("--") or line.startswith("#")


def iter_statements(lines: Iterable[str]) -> Iterator[str]:
    """Yield trimmed, semicolon-terminated statements from ``lines``.

    Args:
        lines: Any iterable of text lines, typically an open text file or
            ``sys.stdin``.  Consumed once, front to back.

    Yields:
        Each statement without its terminating semicolon, trimmed.  A
        trailing statement with no semicolon is yielded at end of input.

    Example:
        >>> list(iter_statements(["INSERT INTO t VALUES ('a;b');"]))
        ["INSERT INTO t VALUES ('a;b')"]
    """
    single_quote = False
    double_quote = False
    in_comment = False
    buffer: list[str] = []

    for raw_line in lines:
        line = raw_line.strip()

        if _is_skipped_line(line):
            continue

        # Block comments are line-granular
        if not in_comment and line.startswith("/*"):
            in_comment = True
        if in_comment:
            if "*/" in line:
                in_comment = False
            continue

        # Lines of a multi-line statement are joined with a newline
        if buffer:
            buffer.append("\n")

        escaped = False
        for ch in line:
            if escaped:
                buffer.append(ch)
                escaped = False
                continue

            if ch == "\\":
                buffer.append(ch)
                escaped = True
                continue

            if ch == "'" and not double_quote:
                single_quote = not single_quote
            elif ch == '"' and not single_quote:
                double_quote = not double_quote

            if ch == ";" and not single_quote and not double_quote:
                statement = "".join(buffer).strip()
                buffer = []
                if statement:
                    yield statement
            else:
                buffer.append(ch)

    statement = "".join(buffer).strip()
    if statement:
        yield statement
