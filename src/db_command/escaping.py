"""Identifier and string escaping shared by both backends."""


def esc_sql_ident(ident: str) -> str:
    """Backtick-quote a MySQL identifier, doubling embedded backticks.

    Example:
        >>> esc_sql_ident("wp_posts")
        '`wp_posts`'
    """
    return "`" + ident.replace("`", "``") + "`"


def esc_sql_string(value: str) -> str:
    """Quote a MySQL string literal: backslashes first, then single quotes."""
    value = value.replace("\\", "\\\\")
    value = value.replace("'", "''")
    return "'" + value + "'"


def quote_sqlite_ident(ident: str) -> str:
    """Double-quote a SQLite identifier, doubling embedded double quotes."""
    return '"' + ident.replace('"', '""') + '"'


def unquote_ident(token: str) -> str:
    """Strip backticks, double quotes or brackets from an identifier token."""
    if len(token) >= 2:
        first, last = token[0], token[-1]
        if first == last and first in "`\"":
            return token[1:-1].replace(first * 2, first)
        if first == "[" and last == "]":
            return token[1:-1]
    return token


def esc_like(value: str) -> str:
    """Escape ``%``, ``_`` and backslash for use inside a LIKE pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
