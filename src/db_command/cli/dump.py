"""Export and import commands.

Usage:
    db-command export
    db-command export backup.sql --tables=wp_posts,wp_users
    db-command export - > backup.sql
    db-command export --porcelain
    db-command import backup.sql
    db-command import - < backup.sql
"""

import argparse
import secrets
from datetime import date

from db_command import output
from db_command.cli.common import add_credentials, open_backend
from db_command.dump.models import ExportOptions, ImportOptions, split_csv
from db_command.errors import DBCommandError


def default_export_file(db_name: str) -> str:
    """``<db>-<YYYY-MM-DD>-<7 hex chars>.sql``"""
    return f"{db_name}-{date.today():%Y-%m-%d}-{secrets.token_hex(4)[:7]}.sql"


def cmd_export(args: argparse.Namespace) -> int:
    """Handle export command.

    Prints nothing when writing to STDOUT, only the file name with
    ``--porcelain``, and a success line otherwise.
    """
    with open_backend(args) as (profile, backend):
        result_file = args.file or default_export_file(profile.name)
        stdout = result_file == "-"
        if stdout and args.porcelain:
            raise DBCommandError("Porcelain is not allowed when output mode is STDOUT.")

        options = ExportOptions(
            tables=split_csv(args.tables),
            exclude_tables=split_csv(args.exclude_tables),
            porcelain=args.porcelain,
            add_drop_table=args.add_drop_table,
            dbuser=args.dbuser,
            dbpass=args.dbpass,
            defaults=args.defaults,
            include_tablespaces=args.include_tablespaces,
            extra=args.passthrough,
        )
        backend.export(result_file, options)

    if args.porcelain:
        output.line(result_file)
    elif not stdout:
        output.success(f"Exported to '{result_file}'.")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Handle import command.

    Statements that fail on the embedded engine are reported as warnings;
    the import still succeeds.
    """
    with open_backend(args) as (profile, backend):
        source = args.file or f"{profile.name}.sql"
        options = ImportOptions(
            skip_optimization=args.skip_optimization,
            dbuser=args.dbuser,
            dbpass=args.dbpass,
            defaults=args.defaults,
            extra=args.passthrough,
        )
        result = backend.import_dump(source, options)

    output.success(f"Imported from '{result.source}'.")
    return 0


def register(subparsers: argparse._SubParsersAction) -> None:
    """Add the export and import subcommands."""
    p_export = subparsers.add_parser(
        "export",
        help="Export the database to a file or to STDOUT",
        allow_abbrev=False,
    )
    p_export.add_argument(
        "file",
        nargs="?",
        help="Output file; '-' for STDOUT (default: <dbname>-<date>-<hash>.sql)",
    )
    p_export.add_argument("--tables", help="Comma-separated list of tables to export")
    p_export.add_argument(
        "--exclude_tables",
        help="Comma-separated list of tables to leave out",
    )
    p_export.add_argument(
        "--porcelain",
        action="store_true",
        help="Output only the file name",
    )
    p_export.add_argument(
        "--add-drop-table",
        action="store_true",
        help="Add DROP TABLE IF EXISTS before each CREATE TABLE (mysqldump)",
    )
    p_export.add_argument(
        "--include-tablespaces",
        action="store_true",
        help="Include tablespace information (mysqldump)",
    )
    add_credentials(p_export, defaults=True)
    p_export.set_defaults(func=cmd_export, passthrough_allowed=True)

    p_import = subparsers.add_parser(
        "import",
        help="Import a SQL file or STDIN into the database",
        allow_abbrev=False,
    )
    p_import.add_argument(
        "file",
        nargs="?",
        help="SQL file to import; '-' for STDIN (default: <dbname>.sql)",
    )
    p_import.add_argument(
        "--skip-optimization",
        action="store_true",
        help="Do not disable autocommit and key checks during the import",
    )
    add_credentials(p_import, defaults=True)
    p_import.set_defaults(func=cmd_import, passthrough_allowed=True)
