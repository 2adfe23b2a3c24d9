"""db-command exception hierarchy.

Every error the CLI reports as fatal derives from ``DBCommandError``.
Library code raises these; ``db_command.cli`` catches them once and turns
them into a single ``Error:`` line and a non-zero exit code.
"""


class DBCommandError(Exception):
    """Base exception for all db-command errors."""

    pass


class ConfigError(DBCommandError):
    """Raised when the configuration file is invalid."""

    pass


class ProfileNotFoundError(DBCommandError):
    """Raised when no database profile is configured."""

    pass


class BackendError(DBCommandError):
    """Raised when a backend cannot be used (missing binary, engine, plugin)."""

    pass


class CommandFailedError(BackendError):
    """Raised when an external client binary exits with a non-zero code."""

    def __init__(self, message: str, returncode: int = 1) -> None:
        super().__init__(message)
        self.returncode = returncode


class UnsupportedArgumentError(DBCommandError):
    """Raised when an option is not supported by the selected backend."""

    pass


class UnsupportedOperationError(DBCommandError):
    """Raised when a command is not available for the selected backend."""

    pass


class QueryError(DBCommandError):
    """Raised when the embedded translator fails to execute a statement."""

    pass


class DumpError(DBCommandError):
    """Raised when a dump destination or source cannot be opened."""

    pass
