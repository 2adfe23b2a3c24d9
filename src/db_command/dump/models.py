"""Option and result models for dump export and restore.

Usage:
    from db_command.dump.models import ExportOptions, ImportOptions, TableFilter

    options = ExportOptions(tables=["wp_posts"], exclude_tables=["wp_users"])
    table_filter = options.table_filter()
    table_filter.includes("wp_posts")   # True
"""

from pydantic import BaseModel, Field

# Internal bookkeeping tables of the embedded engine, never exported
INTERNAL_TABLES = frozenset(
    {
        "_mysql_data_types_cache",
        "sqlite_master",
        "sqlite_sequence",
    }
)


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated option value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class TableFilter(BaseModel):
    """Include/exclude sets consulted for every table of an export."""

    include: frozenset[str] = frozenset()
    exclude: frozenset[str] = INTERNAL_TABLES

    def includes(self, table: str) -> bool:
        """A table is exported iff it passes the include list and misses the exclude list."""
        if self.include and table not in self.include:
            return False
        return table not in self.exclude


class ExportOptions(BaseModel):
    """Options accepted by ``export``.

    ``extra`` holds ``--<field>=<value>`` passthrough options meant for
    ``mysqldump``.
    """

    tables: list[str] = Field(default_factory=list)
    exclude_tables: list[str] = Field(default_factory=list)
    porcelain: bool = False
    add_drop_table: bool = False
    dbuser: str | None = None
    dbpass: str | None = None
    defaults: bool = False
    include_tablespaces: bool = False
    extra: dict[str, str | bool] = Field(default_factory=dict)

    def table_filter(self) -> TableFilter:
        """Build the export filter; the internal tables are always excluded."""
        return TableFilter(
            include=frozenset(self.tables),
            exclude=INTERNAL_TABLES | frozenset(self.exclude_tables),
        )

    def supplied(self) -> set[str]:
        """CLI names of the backend-specific options that were given."""
        names = set()
        if self.extra:
            names.add("fields")
        if self.include_tablespaces:
            names.add("include-tablespaces")
        if self.defaults:
            names.add("defaults")
        if self.dbuser is not None:
            names.add("dbuser")
        if self.dbpass is not None:
            names.add("dbpass")
        return names


class ImportOptions(BaseModel):
    """Options accepted by ``import``."""

    skip_optimization: bool = False
    dbuser: str | None = None
    dbpass: str | None = None
    defaults: bool = False
    extra: dict[str, str | bool] = Field(default_factory=dict)

    def supplied(self) -> set[str]:
        """CLI names of the backend-specific options that were given."""
        names = set()
        if self.skip_optimization:
            names.add("skip-optimization")
        if self.extra:
            names.add("fields")
        if self.defaults:
            names.add("defaults")
        if self.dbuser is not None:
            names.add("dbuser")
        if self.dbpass is not None:
            names.add("dbpass")
        return names


class ExportResult(BaseModel):
    """Outcome of an export."""

    destination: str
    tables_written: int = 0
    rows_written: int = 0


class ImportResult(BaseModel):
    """Outcome of a restore.  Failed statements are warnings, not errors."""

    source: str
    statements_executed: int = 0
    failed_statements: list[str] = Field(default_factory=list)
