"""db-command: database administration for MySQL and embedded SQLite sites.

Creates, drops, checks, dumps and restores the database of a configured
profile.  MySQL/MariaDB is driven through its client binaries; SQLite is
handled in-process through a translator that understands the MySQL dialect
used by dumps.

Usage:
    from db_command import get_active_profile, get_backend, ExportOptions

    _, profile = get_active_profile(profile_name="local")
    backend = get_backend(profile)
    backend.export("backup.sql", ExportOptions())
"""

__version__ = "0.1.0"

# Backends
from db_command.backends.base import AdminOptions, ColumnInfo, DatabaseBackend
from db_command.backends.client_server import ClientServerBackend
from db_command.backends.embedded import EmbeddedBackend
from db_command.backends.selector import Engine, detect_engine

# Config
from db_command.config.loader import load_db_config
from db_command.config.models import DatabaseConfig, DatabaseProfile

# Dump pipeline
from db_command.dump.models import ExportOptions, ExportResult, ImportOptions, ImportResult
from db_command.dump.restore import import_dump
from db_command.dump.splitter import iter_statements
from db_command.dump.writer import export_database

# Errors
from db_command.errors import DBCommandError

# Factory
from db_command.factory import get_active_profile, get_backend

# Translator
from db_command.sqlite.translator import SQLiteTranslator

__all__ = [
    # Backends
    "AdminOptions",
    "ColumnInfo",
    "DatabaseBackend",
    "ClientServerBackend",
    "EmbeddedBackend",
    "Engine",
    "detect_engine",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    # Dump pipeline
    "ExportOptions",
    "ExportResult",
    "ImportOptions",
    "ImportResult",
    "export_database",
    "import_dump",
    "iter_statements",
    # Errors
    "DBCommandError",
    # Factory
    "get_active_profile",
    "get_backend",
    # Translator
    "SQLiteTranslator",
]
