"""SQL dump export and restore for the embedded engine.

Usage:
    from db_command.dump import export_database, import_dump, iter_statements
    from db_command.dump import ExportOptions, ImportOptions
"""

from db_command.dump.encoder import Value, ValueKind, classify, encode_row, encode_value
from db_command.dump.models import (
    INTERNAL_TABLES,
    ExportOptions,
    ExportResult,
    ImportOptions,
    ImportResult,
    TableFilter,
)
from db_command.dump.restore import import_dump
from db_command.dump.splitter import iter_statements
from db_command.dump.writer import DumpWriter, export_database

__all__ = [
    "INTERNAL_TABLES",
    "DumpWriter",
    "ExportOptions",
    "ExportResult",
    "ImportOptions",
    "ImportResult",
    "TableFilter",
    "Value",
    "ValueKind",
    "classify",
    "encode_row",
    "encode_value",
    "export_database",
    "import_dump",
    "iter_statements",
]
