"""CLI for database administration.

Runs administrative commands against the database of the active profile,
on MySQL/MariaDB (through the client binaries) or on the embedded SQLite
database (through the translator).

Usage:
    db-command create
    db-command --profile staging export backup.sql
    db-command import backup.sql
    db-command query "SELECT COUNT(*) FROM wp_posts"
    db-command search example.com --stats
    db-command size --tables --human-readable
    db-command users create app_user --password=secret --grant-privileges

Commands:
    create    - Create the database
    drop      - Delete the database
    reset     - Remove all tables
    clean     - Drop the tables that use the table prefix
    check     - Check the database
    optimize  - Optimize the database
    repair    - Repair the database
    cli       - Open an interactive console
    query     - Run SQL
    export    - Export to a SQL file
    import    - Import a SQL file
    tables    - List tables
    size      - Show database or table sizes
    prefix    - Show the table prefix
    search    - Find a string in the database
    columns   - Show the columns of a table
    users     - Manage database users
"""

import argparse
import logging
import sys

from db_command import output
from db_command.cli import dump
from db_command.cli.common import (
    add_credentials,
    add_yes,
    admin_options,
    confirm,
    open_backend,
    parse_passthrough,
)
from db_command.errors import CommandFailedError, DBCommandError
from db_command.search import SearchOptions, search_tables
from db_command.size import SIZE_FORMATS, format_size
from db_command.tables import resolve_tables

logger = logging.getLogger(__name__)


# ============================================================================
# Database lifecycle
# ============================================================================


def cmd_create(args: argparse.Namespace) -> int:
    with open_backend(args) as (_, backend):
        backend.create(admin_options(args))
    output.success("Database created.")
    return 0


def cmd_drop(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, backend):
        if not confirm(f"Are you sure you want to drop the '{profile.name}' database?", args):
            return 0
        backend.drop(admin_options(args))
    output.success("Database dropped.")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, backend):
        if not confirm(f"Are you sure you want to reset the '{profile.name}' database?", args):
            return 0
        backend.reset(admin_options(args))
    output.success("Database reset.")
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    """Drop every table that carries the profile's table prefix."""
    with open_backend(args) as (profile, backend):
        question = (
            f"Are you sure you want to drop all the tables on '{profile.name}' "
            f"that use the current site's database prefix ('{profile.table_prefix}')?"
        )
        if not confirm(question, args):
            return 0
        tables = resolve_tables(backend.list_tables(), profile.table_prefix)
        backend.drop_tables(tables, admin_options(args))
    output.success("Tables dropped.")
    return 0


# ============================================================================
# Maintenance
# ============================================================================


def cmd_check(args: argparse.Namespace) -> int:
    with open_backend(args) as (_, backend):
        backend.check(admin_options(args))
    output.success("Database checked.")
    return 0


def cmd_optimize(args: argparse.Namespace) -> int:
    with open_backend(args) as (_, backend):
        backend.optimize(admin_options(args))
    output.success("Database optimized.")
    return 0


def cmd_repair(args: argparse.Namespace) -> int:
    with open_backend(args) as (_, backend):
        backend.repair(admin_options(args))
    output.success("Database repaired.")
    return 0


# ============================================================================
# Interactive and ad-hoc SQL
# ============================================================================


def cmd_cli(args: argparse.Namespace) -> int:
    options = admin_options(args)
    if args.database:
        options.extra["database"] = args.database
    if args.default_character_set:
        options.extra["default-character-set"] = args.default_character_set
    with open_backend(args) as (_, backend):
        backend.cli(options)
    return 0


def cmd_query(args: argparse.Namespace) -> int:
    """Run SQL given as an argument, or read it from STDIN."""
    with open_backend(args) as (_, backend):
        backend.query(args.sql, admin_options(args))
    return 0


# ============================================================================
# Introspection
# ============================================================================


def cmd_tables(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, backend):
        tables = resolve_tables(
            backend.list_tables(),
            profile.table_prefix,
            args.tables,
            all_tables=args.all_tables,
        )

    if args.format == "csv":
        output.line(",".join(tables))
    else:
        for table in tables:
            output.line(table)
    return 0


def cmd_size(args: argparse.Namespace) -> int:
    """Show the size of the database, or of each table with ``--tables``.

    Sizes are in bytes unless ``--size_format`` or ``--human-readable`` is
    given.  A bare ``--size_format`` on the whole database prints just the
    number.
    """
    if args.size_format and args.human_readable:
        raise DBCommandError(
            "Cannot use --size_format and --human-readable arguments at the same time."
        )

    per_table = args.list_tables or args.all_tables or args.all_tables_with_prefix
    with open_backend(args) as (profile, backend):
        if per_table:
            names = resolve_tables(
                backend.list_tables(),
                profile.table_prefix,
                args.tables,
                all_tables=args.all_tables,
            )
            sizes = [(name, backend.table_size(name)) for name in names]
        else:
            sizes = [(profile.name, backend.database_size())]

    rows = [
        {"Name": name, "Size": format_size(size, args.size_format, args.human_readable)}
        for name, size in sizes
    ]

    if args.size_format and not per_table and not args.format:
        output.line(rows[0]["Size"].split(" ")[0])
    else:
        output.display_items(rows, ["Name", "Size"], args.format or "table")
    return 0


def cmd_prefix(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, _):
        output.line(profile.table_prefix)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    options = SearchOptions(
        regex=args.regex,
        regex_flags=args.regex_flags or "",
        before_context=args.before_context,
        after_context=args.after_context,
        table_column_once=args.table_column_once,
        one_line=args.one_line,
        matches_only=args.matches_only,
        stats=args.stats,
    )
    with open_backend(args) as (profile, backend):
        tables = resolve_tables(
            backend.list_tables(),
            profile.table_prefix,
            args.tables,
            all_tables=args.all_tables,
        )
        stats = search_tables(backend, tables, args.search, options)

    if args.stats:
        output.success(stats.message())
    return 0


def cmd_columns(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, backend):
        resolve_tables(backend.list_tables(), profile.table_prefix, [args.table], all_tables=True)
        columns = backend.get_columns(args.table)

    rows = [
        {
            "Field": c.field,
            "Type": c.type,
            "Null": c.null,
            "Key": c.key,
            "Default": c.default,
            "Extra": c.extra,
        }
        for c in columns
    ]
    output.display_items(rows, ["Field", "Type", "Null", "Key", "Default", "Extra"], args.format)
    return 0


def cmd_users_create(args: argparse.Namespace) -> int:
    with open_backend(args) as (profile, backend):
        backend.create_user(
            args.username,
            args.host,
            args.password or "",
            args.grant_privileges,
            admin_options(args),
        )

    who = f"'{args.username}'@'{args.host}'"
    if args.grant_privileges:
        output.success(
            f"Database user {who} created with privileges on database '{profile.name}'."
        )
    else:
        output.success(f"Database user {who} created.")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_table_scope(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--all-tables-with-prefix",
        action="store_true",
        help="Consider all tables that match the table prefix (default)",
    )
    parser.add_argument(
        "--all-tables",
        action="store_true",
        help="Consider every table in the database, regardless of the prefix",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="db-command",
        description="Perform basic database operations",
        allow_abbrev=False,
    )
    parser.add_argument("--config", help="Path to db.toml (default: ./db.toml)")
    parser.add_argument("--profile", help="Profile name from db.toml")
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument("--debug", action="store_true", help="Log debug output to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add(name: str, help_text: str, func, passthrough: bool = False) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text, allow_abbrev=False)
        sub.set_defaults(func=func, passthrough_allowed=passthrough)
        return sub

    p_create = add("create", "Create a new database", cmd_create)
    add_credentials(p_create)

    p_drop = add("drop", "Delete the existing database", cmd_drop)
    add_credentials(p_drop)
    add_yes(p_drop)

    p_reset = add("reset", "Remove all tables from the database", cmd_reset)
    add_credentials(p_reset)
    add_yes(p_reset)

    p_clean = add("clean", "Remove all tables with the table prefix", cmd_clean)
    add_credentials(p_clean)
    add_yes(p_clean)

    for name, help_text, func in (
        ("check", "Check the current status of the database", cmd_check),
        ("optimize", "Optimize the database", cmd_optimize),
        ("repair", "Repair the database", cmd_repair),
    ):
        add_credentials(add(name, help_text, func, passthrough=True))

    p_cli = add("cli", "Open a console using the database credentials", cmd_cli, passthrough=True)
    p_cli.add_argument("--database", help="Database to use (default: the profile's)")
    p_cli.add_argument("--default-character-set", help="Client character set")
    add_credentials(p_cli)

    p_query = add("query", "Execute a SQL query against the database", cmd_query, passthrough=True)
    p_query.add_argument("sql", nargs="?", help="SQL to run (default: read from STDIN)")
    add_credentials(p_query)

    dump.register(subparsers)

    p_tables = add("tables", "List the database tables", cmd_tables)
    p_tables.add_argument("tables", nargs="*", help="Table names or wildcard patterns")
    _add_table_scope(p_tables)
    p_tables.add_argument("--format", choices=["list", "csv"], default="list")

    p_size = add("size", "Display the database name and size", cmd_size)
    p_size.add_argument("tables", nargs="*", help="Table names or wildcard patterns")
    p_size.add_argument(
        "--tables",
        dest="list_tables",
        action="store_true",
        help="Display each table name and size instead of the database size",
    )
    _add_table_scope(p_size)
    p_size.add_argument("--size_format", choices=SIZE_FORMATS, help="Unit for the size")
    p_size.add_argument(
        "--human-readable",
        action="store_true",
        help="Pick a decimal unit for each size",
    )
    p_size.add_argument("--format", choices=output.FORMATS)

    add("prefix", "Display the table prefix", cmd_prefix)

    p_search = add("search", "Find a string in the database", cmd_search)
    p_search.add_argument("search", help="String (or regex) to search for")
    p_search.add_argument("tables", nargs="*", help="Table names or wildcard patterns")
    _add_table_scope(p_search)
    p_search.add_argument("--before_context", type=int, default=40)
    p_search.add_argument("--after_context", type=int, default=40)
    p_search.add_argument("--regex", action="store_true", help="Search with a regular expression")
    p_search.add_argument("--regex-flags", help="Regex modifiers, e.g. 'i'")
    p_search.add_argument(
        "--table_column_once",
        action="store_true",
        help="Print 'table:column' once per column rather than per row",
    )
    p_search.add_argument(
        "--one_line",
        action="store_true",
        help="Print 'table:column:id:match' on one line",
    )
    p_search.add_argument(
        "--matches_only",
        action="store_true",
        help="Print only the matches with their context",
    )
    p_search.add_argument("--stats", action="store_true", help="Print a summary of the search")

    p_columns = add("columns", "Display information about a table", cmd_columns)
    p_columns.add_argument("table", help="Table name")
    p_columns.add_argument("--format", choices=output.FORMATS, default="table")

    p_users = subparsers.add_parser("users", help="Manage database users", allow_abbrev=False)
    users_sub = p_users.add_subparsers(dest="users_command", required=True)
    p_users_create = users_sub.add_parser("create", help="Create a database user", allow_abbrev=False)
    p_users_create.add_argument("username", help="Name of the user")
    p_users_create.add_argument("host", nargs="?", default="localhost", help="Host of the user")
    p_users_create.add_argument("--password", help="Password of the user")
    p_users_create.add_argument(
        "--grant-privileges",
        action="store_true",
        help="Grant all privileges on the database to the user",
    )
    add_credentials(p_users_create)
    p_users_create.set_defaults(func=cmd_users_create, passthrough_allowed=False)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args, unknown = parser.parse_known_args(argv)

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    if unknown and not args.passthrough_allowed:
        parser.error(f"unrecognized arguments: {' '.join(unknown)}")

    try:
        args.passthrough = parse_passthrough(unknown)
        return args.func(args)
    except CommandFailedError as e:
        output.error(str(e))
        return e.returncode
    except DBCommandError as e:
        output.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
