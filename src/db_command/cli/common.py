"""Helpers shared by the CLI command handlers."""

import argparse
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.markup import escape
from rich.prompt import Confirm

from db_command import output
from db_command.backends.base import AdminOptions, DatabaseBackend
from db_command.config.models import DatabaseProfile
from db_command.errors import DBCommandError
from db_command.factory import get_active_profile, get_backend


@contextmanager
def open_backend(
    args: argparse.Namespace,
) -> Iterator[tuple[DatabaseProfile, DatabaseBackend]]:
    """Resolve the active profile and yield it with its backend.

    The backend is closed when the block exits.
    """
    config_path = Path(args.config) if args.config else None
    _, profile = get_active_profile(config_path, args.profile, args.env_prefix)
    backend = get_backend(profile)
    try:
        yield profile, backend
    finally:
        backend.close()


def confirm(question: str, args: argparse.Namespace) -> bool:
    """Ask for confirmation unless ``--yes`` was given."""
    if getattr(args, "yes", False):
        return True
    return Confirm.ask(escape(question), console=output.console, default=False)


def admin_options(args: argparse.Namespace) -> AdminOptions:
    return AdminOptions(
        dbuser=getattr(args, "dbuser", None),
        dbpass=getattr(args, "dbpass", None),
        extra=getattr(args, "passthrough", {}),
    )


def parse_passthrough(unknown: list[str]) -> dict[str, str | bool]:
    """Turn leftover ``--key=value`` / ``--flag`` arguments into options.

    Raises:
        DBCommandError: If an argument is not a long option.

    Example:
        >>> parse_passthrough(["--host=db", "--quick"])
        {'host': 'db', 'quick': True}
    """
    options: dict[str, str | bool] = {}
    for arg in unknown:
        if not arg.startswith("--") or len(arg) == 2:
            raise DBCommandError(f"Unexpected argument: {arg}")
        key, sep, value = arg[2:].partition("=")
        options[key] = value if sep else True
    return options


def add_credentials(parser: argparse.ArgumentParser, defaults: bool = False) -> None:
    """Add ``--dbuser``/``--dbpass`` (and optionally ``--defaults``)."""
    parser.add_argument("--dbuser", help="Username to pass to the client binary")
    parser.add_argument("--dbpass", help="Password to pass to the client binary")
    if defaults:
        parser.add_argument(
            "--defaults",
            action="store_true",
            help="Let the client binary load its option files",
        )


def add_yes(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Answer yes to the confirmation message",
    )
