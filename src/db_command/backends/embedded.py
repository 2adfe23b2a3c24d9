"""Embedded (SQLite) backend.

Database lifecycle commands work on the database file itself; everything
that touches data goes through ``SQLiteTranslator``.  Export and import use
the streaming dump pipeline in ``db_command.dump``.

Usage:
    from db_command.backends.embedded import EmbeddedBackend

    backend = EmbeddedBackend(profile, Path("wp-content/database/.ht.sqlite"))
    backend.export("backup.sql", ExportOptions())
"""

import logging
import re
import subprocess
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rich.table import Table
from rich.text import Text
from sqlalchemy.exc import SQLAlchemyError

from db_command import output
from db_command.backends.base import AdminOptions, ColumnInfo
from db_command.backends.selector import check_sqlite_plugin
from db_command.config.models import DatabaseProfile
from db_command.dump.models import (
    INTERNAL_TABLES,
    ExportOptions,
    ExportResult,
    ImportOptions,
    ImportResult,
)
from db_command.dump.restore import import_dump
from db_command.dump.splitter import iter_statements
from db_command.dump.writer import export_database
from db_command.errors import (
    BackendError,
    CommandFailedError,
    QueryError,
    UnsupportedArgumentError,
    UnsupportedOperationError,
)
from db_command.escaping import quote_sqlite_ident
from db_command.sqlite.translator import SQLiteTranslator

logger = logging.getLogger(__name__)

_ROW_MODIFYING_RE = re.compile(r"\b(UPDATE|DELETE|INSERT|REPLACE)\b", re.IGNORECASE)


def check_arguments(supplied: set[str], kind: str) -> None:
    """Reject options that only make sense for the client/server backend.

    Raises:
        UnsupportedArgumentError: Naming every unsupported option given.
    """
    if supplied:
        raise UnsupportedArgumentError(
            f"The following arguments are not supported by SQLite {kind}: "
            + ", ".join(sorted(supplied))
        )


class EmbeddedBackend:
    """``DatabaseBackend`` for a SQLite database file.

    Args:
        profile: Active database profile.
        db_path: Location of the database file.
    """

    def __init__(self, profile: DatabaseProfile, db_path: Path) -> None:
        self.profile = profile
        self.db_path = Path(db_path)

    @contextmanager
    def _open(self) -> Iterator[SQLiteTranslator]:
        if not self.db_path.exists():
            raise BackendError(f"Database does not exist: {self.db_path}")
        with SQLiteTranslator(self.db_path) as translator:
            yield translator

    def close(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        db_dir = self.db_path.parent
        try:
            db_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise BackendError(f"Could not create directory: {db_dir}") from e

        try:
            with SQLiteTranslator(self.db_path) as translator:
                translator.query("CREATE TABLE IF NOT EXISTS _db_command_init (id INTEGER)")
                translator.query("DROP TABLE _db_command_init")
        except QueryError as e:
            raise BackendError(f"Could not create SQLite database: {e}") from e

    def _delete(self) -> None:
        try:
            self.db_path.unlink()
        except OSError as e:
            raise BackendError(f"Could not delete database file: {self.db_path}") from e

    def create(self, options: AdminOptions) -> None:
        if self.db_path.exists():
            raise BackendError("Database already exists.")
        self._initialize()
        logger.debug("Created SQLite database at %s", self.db_path)

    def drop(self, options: AdminOptions) -> None:
        if not self.db_path.exists():
            raise BackendError("Database does not exist.")
        self._delete()

    def reset(self, options: AdminOptions) -> None:
        if self.db_path.exists():
            self._delete()
        self._initialize()

    def drop_tables(self, tables: list[str], options: AdminOptions) -> None:
        with self._open() as translator:
            for table in tables:
                translator.query(f"DROP TABLE IF EXISTS {quote_sqlite_ident(table)}")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def check(self, options: AdminOptions) -> None:
        with self._open() as translator:
            rows = translator.query("PRAGMA integrity_check")
        problems = [str(next(iter(r.values()))) for r in rows]
        if problems != ["ok"]:
            raise BackendError("Database check failed: " + "; ".join(problems))

    def optimize(self, options: AdminOptions) -> None:
        with self._open() as translator:
            translator.query("VACUUM")

    def repair(self, options: AdminOptions) -> None:
        raise UnsupportedOperationError(
            "Database repair is not supported for SQLite databases. "
            "SQLite databases are self-repairing through journaling."
        )

    def cli(self, options: AdminOptions) -> None:
        if not self.db_path.exists():
            raise BackendError("Database does not exist.")
        try:
            completed = subprocess.run(["sqlite3", str(self.db_path)], check=False)
        except FileNotFoundError as e:
            raise BackendError(
                "The sqlite3 binary could not be found. Please install sqlite3 to use the cli command."
            ) from e
        if completed.returncode != 0:
            raise CommandFailedError(
                f"sqlite3 exited with code {completed.returncode}", completed.returncode
            )

    def query(self, sql: str | None, options: AdminOptions) -> None:
        if sql is None:
            sql = sys.stdin.read()

        with self._open() as translator:
            for statement in iter_statements(sql.splitlines()):
                try:
                    rows = translator.query(statement)
                except QueryError as e:
                    raise BackendError(f"Query failed: {e}") from e

                if _ROW_MODIFYING_RE.search(statement):
                    output.success(f"Query succeeded. Rows affected: {max(translator.last_rowcount, 0)}")
                elif rows:
                    output.console.print(render_rows(rows))

    # ------------------------------------------------------------------
    # Dump and restore
    # ------------------------------------------------------------------

    def export(self, destination: str, options: ExportOptions) -> ExportResult:
        check_arguments(options.supplied(), "exports")
        check_sqlite_plugin(self.profile)
        with self._open() as translator:
            return export_database(translator, destination, options)

    def import_dump(self, source: str, options: ImportOptions) -> ImportResult:
        check_arguments(options.supplied(), "imports")
        check_sqlite_plugin(self.profile)
        with self._open() as translator:
            return import_dump(translator, source, on_warning=output.warning)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_tables(self) -> list[str]:
        with self._open() as translator:
            rows = translator.query("SHOW TABLES")
        return [r["name"] for r in rows if r["name"] not in INTERNAL_TABLES]

    def database_size(self) -> int:
        if not self.db_path.exists():
            return 0
        return self.db_path.stat().st_size

    def table_size(self, table: str) -> int:
        with self._open() as translator:
            native = translator.get_underlying_connection()
            try:
                size = native.scalar(
                    "SELECT SUM(pgsize) FROM dbstat WHERE name = :name", {"name": table}
                )
            except SQLAlchemyError as e:
                raise BackendError(
                    "Table sizes need the dbstat virtual table, which this SQLite build lacks."
                ) from e
        return int(size or 0)

    def get_columns(self, table: str) -> list[ColumnInfo]:
        with self._open() as translator:
            try:
                rows = translator.query(f"SHOW COLUMNS FROM {quote_sqlite_ident(table)}")
            except QueryError as e:
                raise BackendError(str(e)) from e
        return [ColumnInfo.from_row(r) for r in rows]

    def select_text_column(
        self,
        table: str,
        primary_key: str | None,
        column: str,
        like: str | None = None,
    ) -> Iterator[tuple[Any, Any]]:
        pk_sql = quote_sqlite_ident(primary_key) if primary_key else "NULL"
        col_sql = quote_sqlite_ident(column)
        sql = f"SELECT {pk_sql} AS pk, {col_sql} AS val FROM {quote_sqlite_ident(table)}"
        params = None
        if like is not None:
            sql += f" WHERE {col_sql} LIKE :like ESCAPE '\\'"
            params = {"like": like}

        with self._open() as translator:
            for row in translator.get_underlying_connection().stream(sql, params):
                yield row["pk"], row["val"]

    def create_user(
        self,
        username: str,
        host: str,
        password: str,
        grant_privileges: bool,
        options: AdminOptions,
    ) -> None:
        raise UnsupportedOperationError("User management is not supported for SQLite databases.")


def render_rows(rows: list[dict[str, Any]]) -> Table:
    """Render query rows as a rich table, in column order of the first row."""
    table = Table(show_header=True, header_style="bold")
    headers = list(rows[0].keys())
    for header in headers:
        table.add_column(Text(str(header)))
    for row in rows:
        table.add_row(*(Text("NULL" if row[h] is None else str(row[h])) for h in headers))
    return table
