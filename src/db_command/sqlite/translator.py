"""Embedded SQLite translator.

Maps the small slice of the MySQL dialect that dumps and admin commands use
onto SQLite, through a single SQLAlchemy connection:

- ``SHOW TABLES`` -> rows with a ``name`` key, in catalog order
- ``SHOW CREATE TABLE t`` -> one row with ``Table`` and ``Create Table``
  (the ``CREATE TABLE`` plus the table's explicit ``CREATE INDEX`` statements)
- ``SHOW COLUMNS FROM t`` / ``DESCRIBE t`` -> Field/Type/Null/Key/Default/Extra
- ``SET ...``, ``LOCK TABLES ...``, ``UNLOCK TABLES`` -> no-ops
- MySQL backslash escapes inside quoted literals are rewritten to SQLite form

Everything else is passed to SQLite unchanged.

Usage:
    from db_command.sqlite.translator import SQLiteTranslator

    with SQLiteTranslator("/var/www/wp-content/database/.ht.sqlite") as translator:
        for table in translator.query("SHOW TABLES"):
            print(table["name"])
"""

import logging
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from db_command.errors import QueryError
from db_command.escaping import quote_sqlite_ident, unquote_ident

logger = logging.getLogger(__name__)

_SHOW_TABLES_RE = re.compile(r"SHOW\s+(?:FULL\s+)?TABLES", re.IGNORECASE)
_SHOW_CREATE_RE = re.compile(r"SHOW\s+CREATE\s+TABLE\s+(.+)", re.IGNORECASE)
_SHOW_COLUMNS_RE = re.compile(
    r"(?:SHOW\s+(?:FULL\s+)?COLUMNS\s+FROM|DESCRIBE|DESC)\s+(.+)",
    re.IGNORECASE,
)
_NOOP_RE = re.compile(r"(?:SET\s|LOCK\s+TABLES\s|UNLOCK\s+TABLES\b)", re.IGNORECASE)

# MySQL string escapes; unknown escapes drop the backslash
_ESCAPES = {
    "0": "\x00",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "Z": "\x1a",
}


def rewrite_literals(sql: str) -> str:
    """Rewrite MySQL backslash escapes inside quoted literals for SQLite.

    SQLite has no backslash escapes: ``'it\\'s'`` has to become
    ``'it''s'`` and ``'a\\nb'`` has to carry a real newline.  Backtick
    identifiers are copied untouched.  ``\\%`` and ``\\_`` keep their
    backslash, as they do in MySQL.
    """
    if "\\" not in sql:
        return sql

    out: list[str] = []
    quote: str | None = None
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if quote is None:
            if ch in "'\"`":
                quote = ch
            out.append(ch)
            i += 1
            continue

        if ch == "\\" and quote != "`" and i + 1 < n:
            nxt = sql[i + 1]
            if nxt == quote:
                out.append(quote * 2)
            elif nxt in "%_":
                out.append("\\" + nxt)
            else:
                out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue

        if ch == quote:
            if i + 1 < n and sql[i + 1] == quote:
                out.append(ch * 2)
                i += 2
                continue
            quote = None
        out.append(ch)
        i += 1

    return "".join(out)


class NativeConnection:
    """The underlying SQLite connection with cursor-style access.

    Exposes what the dump writer needs below the translator: streaming
    reads, scalar reads and the engine's string-literal quoting.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def quote(self, value: str | bytes) -> str:
        """Quote a value as a literal the translator reads back verbatim.

        Single quotes and backslashes are doubled; bytes become a blob
        literal. Text holding a NUL character cannot appear in a statement,
        so it is written as its UTF-8 bytes cast back to TEXT.
        """
        if isinstance(value, bytes):
            return "X'" + value.hex().upper() + "'"
        if "\x00" in value:
            return "CAST(X'" + value.encode("utf-8").hex().upper() + "' AS TEXT)"
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"

    def scalar(self, sql: str, params: dict | None = None) -> Any:
        """Run a query and return the first column of the first row."""
        if params is None:
            return self._conn.exec_driver_sql(sql).scalar()
        return self._conn.execute(text(sql), params).scalar()

    def stream(self, sql: str, params: dict | None = None) -> Iterator[dict[str, Any]]:
        """Yield rows one at a time from a forward-only cursor."""
        if params is None:
            result = self._conn.exec_driver_sql(
                sql, execution_options={"stream_results": True}
            )
        else:
            result = self._conn.execution_options(stream_results=True).execute(
                text(sql), params
            )
        try:
            for row in result.mappings():
                yield dict(row)
        finally:
            result.close()

    def count_rows(self, table: str) -> int:
        return int(self.scalar(f"SELECT COUNT(*) FROM {quote_sqlite_ident(table)}"))

    def stream_table(self, table: str) -> Iterator[dict[str, Any]]:
        return self.stream(f"SELECT * FROM {quote_sqlite_ident(table)}")


class SQLiteTranslator:
    """Run MySQL-flavoured statements against a SQLite database file.

    Args:
        db_path: Path of the SQLite database file.
        engine: Optional pre-built SQLAlchemy engine (tests use this).

    Example:
        with SQLiteTranslator(path) as translator:
            translator.query("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
            translator.query("INSERT INTO `t` VALUES (1,'it\\'s')")
    """

    def __init__(self, db_path: str | Path, engine: Engine | None = None) -> None:
        self.db_path = Path(db_path)
        self._engine: Engine = engine or create_engine(f"sqlite:///{self.db_path}")
        self._conn: Connection | None = None
        self.last_rowcount: int = -1

    def __enter__(self) -> "SQLiteTranslator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connection(self) -> Connection:
        if self._conn is None:
            self._conn = self._engine.connect()
        return self._conn

    def get_underlying_connection(self) -> NativeConnection:
        """Access the native connection for cursor reads and quoting."""
        return NativeConnection(self.connection)

    def close(self) -> None:
        """Close the connection and dispose of the engine."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._engine.dispose()

    # ------------------------------------------------------------------
    # Query interface
    # ------------------------------------------------------------------

    def query(self, sql: str) -> list[dict[str, Any]]:
        """Execute one statement and return its rows.

        Statements that return no rows give an empty list; the affected row
        count is kept in ``last_rowcount``.

        Raises:
            QueryError: If SQLite rejects the statement.
        """
        statement = sql.strip().rstrip(";").rstrip()
        self.last_rowcount = -1

        if _SHOW_TABLES_RE.fullmatch(statement):
            return self._show_tables()
        match = _SHOW_CREATE_RE.fullmatch(statement)
        if match:
            return self._show_create_table(unquote_ident(match.group(1)))
        match = _SHOW_COLUMNS_RE.fullmatch(statement)
        if match:
            return self._show_columns(unquote_ident(match.group(1)))
        if _NOOP_RE.match(statement):
            logger.debug("Ignoring statement: %s", statement[:80])
            return []

        return self._execute(rewrite_literals(statement))

    def _execute(self, statement: str, params: dict | None = None) -> list[dict[str, Any]]:
        conn = self.connection
        try:
            if params is None:
                result = conn.exec_driver_sql(statement)
            else:
                result = conn.execute(text(statement), params)
            rows = [dict(r) for r in result.mappings()] if result.returns_rows else []
            self.last_rowcount = result.rowcount
            conn.commit()
        except SQLAlchemyError as e:
            conn.rollback()
            orig = getattr(e, "orig", None)
            raise QueryError(str(orig) if orig is not None else str(e)) from e
        return rows

    def _show_tables(self) -> list[dict[str, Any]]:
        return self._execute("SELECT name FROM sqlite_master WHERE type = 'table'", {})

    def _show_create_table(self, table: str) -> list[dict[str, Any]]:
        rows = self._execute(
            "SELECT type, sql FROM sqlite_master "
            "WHERE tbl_name = :name AND sql IS NOT NULL "
            "AND type IN ('table', 'index')",
            {"name": table},
        )
        creates = [r["sql"] for r in rows if r["type"] == "table"]
        if not creates:
            raise QueryError(f"Table '{table}' doesn't exist")
        indexes = [r["sql"] for r in rows if r["type"] == "index"]
        return [{"Table": table, "Create Table": ";\n".join(creates + indexes)}]

    def _show_columns(self, table: str) -> list[dict[str, Any]]:
        rows = self._execute(f"PRAGMA table_info({quote_sqlite_ident(table)})")
        if not rows:
            raise QueryError(f"Table '{table}' doesn't exist")
        return [
            {
                "Field": r["name"],
                "Type": r["type"],
                "Null": "NO" if r["notnull"] or r["pk"] else "YES",
                "Key": "PRI" if r["pk"] else "",
                "Default": r["dflt_value"],
                "Extra": "",
            }
            for r in rows
        ]
