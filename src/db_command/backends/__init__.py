"""Database backends.

Provides the ``DatabaseBackend`` Protocol, the client/server (MySQL)
backend that drives the client binaries, and the embedded (SQLite)
backend built on the translator.

Usage:
    from db_command.backends import DatabaseBackend, detect_engine, Engine
"""

from db_command.backends.base import AdminOptions, ColumnInfo, DatabaseBackend
from db_command.backends.client_server import ClientServerBackend
from db_command.backends.embedded import EmbeddedBackend
from db_command.backends.selector import Engine, detect_engine, sqlite_db_path

__all__ = [
    "AdminOptions",
    "ColumnInfo",
    "DatabaseBackend",
    "ClientServerBackend",
    "EmbeddedBackend",
    "Engine",
    "detect_engine",
    "sqlite_db_path",
]
