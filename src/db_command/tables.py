"""Table-name resolution for ``tables``, ``size``, ``search`` and ``clean``.

Scope first, then patterns:

- ``--all-tables``: every table in the database
- otherwise (including ``--all-tables-with-prefix``): tables whose name
  starts with the profile's table prefix

Positional patterns then narrow the scope.  A pattern containing ``*`` or
``?`` is a shell-style wildcard; anything else must match a name exactly.
"""

from fnmatch import fnmatchcase

from db_command.errors import DBCommandError


def is_wildcard(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern


def resolve_tables(
    available: list[str],
    prefix: str,
    patterns: list[str] | None = None,
    all_tables: bool = False,
) -> list[str]:
    """Pick the tables a command operates on.

    Args:
        available: All table names, in engine order.
        prefix: Table prefix of the active profile.
        patterns: Optional names or wildcard patterns.
        all_tables: Ignore the prefix and consider every table.

    Returns:
        Matching table names, in engine order.

    Raises:
        DBCommandError: If patterns were given and nothing matches.

    Example:
        >>> resolve_tables(["wp_posts", "wp_users", "other"], "wp_", ["*_posts"])
        ['wp_posts']
    """
    if all_tables:
        tables = list(available)
    else:
        tables = [t for t in available if t.startswith(prefix)]

    if not patterns:
        return tables

    wanted: set[str] = set()
    for pattern in patterns:
        if is_wildcard(pattern):
            wanted.update(t for t in tables if fnmatchcase(t, pattern))
        else:
            wanted.add(pattern)

    matched = [t for t in tables if t in wanted]
    if not matched:
        raise DBCommandError(f"Couldn't find any tables matching: {' '.join(patterns)}")
    return matched
