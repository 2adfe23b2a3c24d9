"""Database backend protocol definition.

Defines the ``DatabaseBackend`` Protocol that both backends implement.
Every method is synchronous; commands run one after another in a single
process.

Usage:
    from db_command.backends.base import DatabaseBackend

    def show(backend: DatabaseBackend) -> None:
        for table in backend.list_tables():
            print(table, backend.table_size(table))
        backend.close()
"""

from collections.abc import Iterator
from typing import Any, Protocol

from pydantic import BaseModel, Field

from db_command.dump.models import ExportOptions, ExportResult, ImportOptions, ImportResult


class AdminOptions(BaseModel):
    """Credentials override and passthrough options for admin commands."""

    dbuser: str | None = None
    dbpass: str | None = None
    extra: dict[str, str | bool] = Field(default_factory=dict)


class ColumnInfo(BaseModel):
    """One row of a column listing."""

    field: str
    type: str
    null: str = "YES"
    key: str = ""
    default: Any = None
    extra: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ColumnInfo":
        """Build from a ``SHOW COLUMNS`` row (MySQL or translated)."""
        return cls(
            field=row["Field"],
            type=row["Type"] or "",
            null=row.get("Null") or "YES",
            key=row.get("Key") or "",
            default=row.get("Default"),
            extra=row.get("Extra") or "",
        )

    def is_text(self) -> bool:
        """Whether the column holds character data (char, varchar, text...)."""
        lowered = self.type.lower()
        return "text" in lowered or "char" in lowered


class DatabaseBackend(Protocol):
    """Administrative operations that every backend must implement.

    Backends that cannot perform an operation raise
    ``UnsupportedOperationError``; all other failures surface as
    ``DBCommandError`` subclasses.
    """

    def create(self, options: AdminOptions) -> None:
        """Create the configured database.

        Raises:
            BackendError: If the database already exists (embedded engine).
            CommandFailedError: If the client binary fails.
        """
        ...

    def drop(self, options: AdminOptions) -> None:
        """Drop the configured database."""
        ...

    def reset(self, options: AdminOptions) -> None:
        """Drop the configured database and create it again, empty."""
        ...

    def drop_tables(self, tables: list[str], options: AdminOptions) -> None:
        """Drop the given tables (used by ``clean``)."""
        ...

    def check(self, options: AdminOptions) -> None:
        ...

    def optimize(self, options: AdminOptions) -> None:
        ...

    def repair(self, options: AdminOptions) -> None:
        ...

    def cli(self, options: AdminOptions) -> None:
        """Open an interactive console on the database."""
        ...

    def query(self, sql: str | None, options: AdminOptions) -> None:
        """Run SQL and print its results.

        Args:
            sql: Statement(s) to run; ``None`` reads them from standard input.
            options: Credentials and passthrough options.
        """
        ...

    def export(self, destination: str, options: ExportOptions) -> ExportResult:
        """Write a SQL dump to ``destination`` (``-`` for standard output).

        Raises:
            UnsupportedArgumentError: If an option does not apply to this backend.
            DumpError: If the destination cannot be opened.
        """
        ...

    def import_dump(self, source: str, options: ImportOptions) -> ImportResult:
        """Execute a SQL dump read from ``source`` (``-`` for standard input).

        Raises:
            UnsupportedArgumentError: If an option does not apply to this backend.
            DumpError: If the source is missing or not readable.
        """
        ...

    def list_tables(self) -> list[str]:
        """Names of all tables in the database, in engine order."""
        ...

    def database_size(self) -> int:
        """Size of the whole database in bytes."""
        ...

    def table_size(self, table: str) -> int:
        """Size of one table (data plus indexes) in bytes."""
        ...

    def get_columns(self, table: str) -> list[ColumnInfo]:
        ...

    def select_text_column(
        self,
        table: str,
        primary_key: str | None,
        column: str,
        like: str | None = None,
    ) -> Iterator[tuple[Any, Any]]:
        """Stream ``(primary key, value)`` pairs of one column.

        Args:
            table: Table to read.
            primary_key: Column whose value identifies the row, or ``None``
                to yield ``None`` ids.
            column: Column to read.
            like: Optional LIKE pattern (already escaped) the value must match.
        """
        ...

    def create_user(
        self,
        username: str,
        host: str,
        password: str,
        grant_privileges: bool,
        options: AdminOptions,
    ) -> None:
        """Create a database user, optionally with all privileges on the database."""
        ...

    def close(self) -> None:
        """Release connections and engines held by the backend."""
        ...
