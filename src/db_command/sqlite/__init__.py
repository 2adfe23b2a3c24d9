"""Embedded SQLite engine access.

Usage:
    from db_command.sqlite import SQLiteTranslator
"""

from db_command.sqlite.translator import NativeConnection, SQLiteTranslator, rewrite_literals

__all__ = ["NativeConnection", "SQLiteTranslator", "rewrite_literals"]
