"""Client/server (MySQL/MariaDB) backend.

Administrative commands, dumps and restores shell out to the ``mysql``,
``mysqldump`` and ``mysqlcheck`` client binaries.  Read-only introspection
(table listing, sizes, columns, search) goes through a SQLAlchemy engine on
the ``mysql+pymysql`` driver.

Credentials always come from the profile unless ``--dbuser``/``--dbpass``
override them.  The password is handed to the binaries through the
``MYSQL_PWD`` environment variable, never on the command line.

Usage:
    from db_command.backends.client_server import ClientServerBackend

    backend = ClientServerBackend(profile)
    backend.create(AdminOptions())
    backend.export("backup.sql", ExportOptions(tables=["wp_posts"]))
"""

import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from sqlalchemy import URL, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db_command.backends.base import AdminOptions, ColumnInfo
from db_command.config.models import DatabaseProfile
from db_command.dump.models import ExportOptions, ExportResult, ImportOptions, ImportResult
from db_command.errors import BackendError, CommandFailedError, DumpError
from db_command.escaping import esc_sql_ident, esc_sql_string

logger = logging.getLogger(__name__)

# Passthrough options ``import`` forwards to the mysql client
ALLOWED_MYSQL_OPTIONS = frozenset(
    {
        "auto-rehash", "auto-vertical-output", "batch", "binary-as-hex",
        "binary-mode", "bind-address", "character-sets-dir", "column-names",
        "column-type-info", "comments", "compress", "connect-expired-password",
        "connect_timeout", "database", "debug", "debug-check", "debug-info",
        "default-auth", "default-character-set", "defaults-extra-file",
        "defaults-file", "defaults-group-suffix", "delimiter",
        "enable-cleartext-plugin", "execute", "force", "get-server-public-key",
        "help", "histignore", "host", "html", "ignore-spaces", "init-command",
        "line-numbers", "local-infile", "login-path", "max_allowed_packet",
        "max_join_size", "named-commands", "net_buffer_length", "no-beep",
        "one-database", "pager", "pipe", "plugin-dir", "port", "print-defaults",
        "protocol", "quick", "raw", "reconnect", "i-am-a-dummy", "safe-updates",
        "secure-auth", "select_limit", "server-public-key-path",
        "shared-memory-base-name", "show-warnings", "sigint-ignore", "silent",
        "skip-auto-rehash", "skip-column-names", "skip-line-numbers",
        "skip-named-commands", "skip-pager", "skip-reconnect", "socket",
        "ssl-ca", "ssl-capath", "ssl-cert", "ssl-cipher", "ssl-crl",
        "ssl-crlpath", "ssl-fips-mode", "ssl-key", "ssl-mode", "syslog",
        "table", "tee", "tls-version", "unbuffered", "verbose", "version",
        "vertical", "wait", "xml",
    }
)

MYSQL = "mysql"
MYSQLDUMP = "mysqldump"
MYSQLCHECK = "mysqlcheck"


def parse_host(host: str) -> dict[str, str]:
    """Split ``host[:port|:/socket]`` into client options.

    Example:
        >>> parse_host("db.local:3307")
        {'host': 'db.local', 'port': '3307'}
        >>> parse_host("localhost:/tmp/mysql.sock")
        {'host': 'localhost', 'socket': '/tmp/mysql.sock'}
    """
    name, sep, rest = host.partition(":")
    if not sep or not rest:
        return {"host": name}
    if rest.isdigit():
        return {"host": name, "port": rest}
    return {"host": name, "socket": rest}


def to_cli_args(args: Mapping[str, Any]) -> list[str]:
    """Turn an options mapping into ``--key=value`` / ``--flag`` arguments.

    ``True`` values become bare flags; ``None``, ``False`` and empty strings
    are dropped.
    """
    argv = []
    for key, value in args.items():
        if value is True:
            argv.append(f"--{key}")
        elif value is None or value is False or value == "":
            continue
        else:
            argv.append(f"--{key}={value}")
    return argv


class ClientServerBackend:
    """``DatabaseBackend`` for a MySQL or MariaDB server.

    Args:
        profile: Active database profile.
        runner: Callable used to spawn the client binaries (tests pass a mock).
    """

    def __init__(self, profile: DatabaseProfile, runner=subprocess.run) -> None:
        self.profile = profile
        self._run_process = runner
        self._engine: Engine | None = None
        self._column_statistics: bool | None = None

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    # ------------------------------------------------------------------
    # Client binaries
    # ------------------------------------------------------------------

    def _required_args(self, options: Mapping[str, Any]) -> tuple[dict[str, Any], str]:
        """Connection options from the profile, with dbuser/dbpass applied.

        Returns:
            Tuple of (options for the command line, password).
        """
        required: dict[str, Any] = dict(parse_host(self.profile.host))
        required["user"] = self.profile.user
        password = self.profile.password

        if "default-character-set" not in options and self.profile.charset:
            required["default-character-set"] = self.profile.charset

        if options.get("dbuser") is not None:
            required["user"] = options["dbuser"]
        if options.get("dbpass") is not None:
            password = options["dbpass"]
        return required, password

    def run(
        self,
        binary: str,
        args: Mapping[str, Any] | None = None,
        flags: list[str] | None = None,
        positional: list[str] | None = None,
        defaults: bool = False,
    ) -> None:
        """Run one client binary with the profile's credentials.

        Args:
            binary: ``mysql``, ``mysqldump`` or ``mysqlcheck``.
            args: ``--key=value`` options; ``dbuser``/``dbpass`` override the
                profile credentials.
            flags: Extra bare flags placed before the options.
            positional: Arguments placed after all options.
            defaults: Let the binary read its option files (no ``--no-defaults``).

        Raises:
            BackendError: If the binary is not installed.
            CommandFailedError: If the binary exits with a non-zero code.
        """
        args = dict(args or {})
        required, password = self._required_args(args)
        args.pop("dbuser", None)
        args.pop("dbpass", None)
        args.pop("password", None)
        final_args = {**args, **required}

        argv = [binary]
        if not defaults:
            argv.append("--no-defaults")
        argv += flags or []
        argv += to_cli_args(final_args)
        argv += positional or []

        env = dict(os.environ)
        env["MYSQL_PWD"] = password

        logger.debug("Running: %s", " ".join(shlex.quote(a) for a in argv))
        try:
            completed = self._run_process(argv, env=env, check=False)
        except FileNotFoundError as e:
            raise BackendError(
                f"The '{binary}' command could not be found. "
                "Please install the MySQL/MariaDB client tools."
            ) from e

        if completed.returncode != 0:
            raise CommandFailedError(
                f"'{binary}' failed with exit code {completed.returncode}.",
                completed.returncode,
            )

    def run_query(self, sql: str, options: AdminOptions, **args: Any) -> None:
        self.run(
            MYSQL,
            {**self._admin_args(options), **args, "execute": sql},
            flags=["--no-auto-rehash"],
        )

    def _admin_args(self, options: AdminOptions) -> dict[str, Any]:
        return {**options.extra, "dbuser": options.dbuser, "dbpass": options.dbpass}

    def supports_column_statistics(self) -> bool:
        """Whether the installed mysqldump knows ``--column-statistics``."""
        if self._column_statistics is None:
            try:
                completed = self._run_process(
                    [MYSQLDUMP, "--help"], capture_output=True, text=True, check=False
                )
            except FileNotFoundError:
                self._column_statistics = False
            else:
                self._column_statistics = "column-statistics" in (completed.stdout or "")
        return self._column_statistics

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_query(self) -> str:
        query = f"CREATE DATABASE {esc_sql_ident(self.profile.name)}"
        if self.profile.charset:
            query += f" DEFAULT CHARSET {esc_sql_ident(self.profile.charset)}"
        if self.profile.collate:
            query += f" DEFAULT COLLATE {esc_sql_ident(self.profile.collate)}"
        return query

    def create(self, options: AdminOptions) -> None:
        self.run_query(self.create_query(), options)

    def drop(self, options: AdminOptions) -> None:
        self.run_query(f"DROP DATABASE {esc_sql_ident(self.profile.name)}", options)

    def reset(self, options: AdminOptions) -> None:
        self.run_query(f"DROP DATABASE IF EXISTS {esc_sql_ident(self.profile.name)}", options)
        self.run_query(self.create_query(), options)

    def drop_tables(self, tables: list[str], options: AdminOptions) -> None:
        if not tables:
            return
        db = esc_sql_ident(self.profile.name)
        sql = "; ".join(f"DROP TABLE IF EXISTS {db}.{esc_sql_ident(t)}" for t in tables)
        self.run_query(sql + ";", options, database=self.profile.name)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _mysqlcheck(self, action: str, options: AdminOptions) -> None:
        args = {**self._admin_args(options), action: True}
        self.run(MYSQLCHECK, args, positional=[self.profile.name])

    def check(self, options: AdminOptions) -> None:
        self._mysqlcheck("check", options)

    def optimize(self, options: AdminOptions) -> None:
        self._mysqlcheck("optimize", options)

    def repair(self, options: AdminOptions) -> None:
        self._mysqlcheck("repair", options)

    def cli(self, options: AdminOptions) -> None:
        args = self._admin_args(options)
        args.setdefault("database", self.profile.name)
        self.run(MYSQL, args, flags=["--no-auto-rehash"])

    def query(self, sql: str | None, options: AdminOptions) -> None:
        args = {**self._admin_args(options), "database": self.profile.name}
        # Without SQL the client reads statements from standard input
        if sql is not None:
            args["execute"] = sql
        self.run(MYSQL, args, flags=["--no-auto-rehash"])

    # ------------------------------------------------------------------
    # Dump and restore
    # ------------------------------------------------------------------

    def _dump_positional(self, options: ExportOptions) -> list[str]:
        positional = [self.profile.name]
        if options.tables:
            positional += ["--tables", *options.tables]
        for table in options.exclude_tables:
            positional += ["--ignore-table", f"{self.profile.name}.{table}"]
        return positional

    def export(self, destination: str, options: ExportOptions) -> ExportResult:
        """Dump the database with mysqldump.

        File destinations are written to a temporary file in the same
        directory and renamed into place once mysqldump succeeds.
        """
        flags = []
        if self.supports_column_statistics():
            flags.append("--skip-column-statistics")
        if not options.include_tablespaces:
            flags.append("--no-tablespaces")
        if options.add_drop_table:
            flags.append("--add-drop-table")

        args: dict[str, Any] = {**options.extra, "dbuser": options.dbuser, "dbpass": options.dbpass}
        positional = self._dump_positional(options)

        if destination == "-":
            self.run(MYSQLDUMP, args, flags, positional, defaults=options.defaults)
            return ExportResult(destination=destination)

        target = Path(destination)
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent.resolve()
            )
        except OSError as e:
            raise DumpError(f"Unable to open file: {destination}") from e
        os.close(fd)

        try:
            args["result-file"] = tmp_name
            self.run(MYSQLDUMP, args, flags, positional, defaults=options.defaults)
            os.replace(tmp_name, target)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

        return ExportResult(destination=destination)

    def import_dump(self, source: str, options: ImportOptions) -> ImportResult:
        args: dict[str, Any] = {
            "dbuser": options.dbuser,
            "dbpass": options.dbpass,
            "database": self.profile.name,
        }

        if source != "-":
            if not os.path.isfile(source) or not os.access(source, os.R_OK):
                raise DumpError(f"Import file missing or not readable: {source}")
            if options.skip_optimization:
                query = "SOURCE %s;"
            else:
                query = (
                    "SET autocommit = 0; SET unique_checks = 0; "
                    "SET foreign_key_checks = 0; SOURCE %s; COMMIT;"
                )
            args["execute"] = query % source

        for key, value in options.extra.items():
            if key in ALLOWED_MYSQL_OPTIONS and value:
                args[key] = value

        self.run(MYSQL, args, flags=["--no-auto-rehash"], defaults=options.defaults)
        return ImportResult(source="STDIN" if source == "-" else source)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        """Lazily-created SQLAlchemy engine for read-only queries."""
        if self._engine is None:
            host = parse_host(self.profile.host)
            query = {}
            if self.profile.charset:
                query["charset"] = self.profile.charset
            if "socket" in host:
                query["unix_socket"] = host["socket"]
            url = URL.create(
                "mysql+pymysql",
                username=self.profile.user or None,
                password=self.profile.password or None,
                host=host["host"],
                port=int(host["port"]) if "port" in host else None,
                database=self.profile.name,
                query=query,
            )
            self._engine = create_engine(url)
        return self._engine

    def _fetch(self, sql: str, params: dict | None = None) -> list[dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql), params or {})
                return [dict(r) for r in result.mappings()]
        except SQLAlchemyError as e:
            raise BackendError(f"Database query failed: {e}") from e

    def list_tables(self) -> list[str]:
        rows = self._fetch("SHOW TABLES")
        return [next(iter(r.values())) for r in rows]

    def database_size(self) -> int:
        rows = self._fetch(
            "SELECT SUM(data_length + index_length) AS size FROM information_schema.TABLES "
            "WHERE table_schema = :schema GROUP BY table_schema",
            {"schema": self.profile.name},
        )
        return int(rows[0]["size"] or 0) if rows else 0

    def table_size(self, table: str) -> int:
        rows = self._fetch(
            "SELECT SUM(data_length + index_length) AS size FROM information_schema.TABLES "
            "WHERE table_schema = :schema AND table_name = :table GROUP BY table_name LIMIT 1",
            {"schema": self.profile.name, "table": table},
        )
        return int(rows[0]["size"] or 0) if rows else 0

    def get_columns(self, table: str) -> list[ColumnInfo]:
        rows = self._fetch(f"SHOW COLUMNS FROM {esc_sql_ident(table)}")
        return [ColumnInfo.from_row(r) for r in rows]

    def select_text_column(
        self,
        table: str,
        primary_key: str | None,
        column: str,
        like: str | None = None,
    ) -> Iterator[tuple[Any, Any]]:
        pk_sql = esc_sql_ident(primary_key) if primary_key else "NULL"
        col_sql = esc_sql_ident(column)
        sql = f"SELECT {pk_sql} AS pk, {col_sql} AS val FROM {esc_sql_ident(table)}"
        params = {}
        if like is not None:
            sql += f" WHERE {col_sql} LIKE :like"
            params["like"] = like

        try:
            with self.engine.connect() as conn:
                result = conn.execution_options(stream_results=True).execute(text(sql), params)
                for row in result.mappings():
                    yield row["pk"], row["val"]
        except SQLAlchemyError as e:
            raise BackendError(f"Database query failed: {e}") from e

    def create_user(
        self,
        username: str,
        host: str,
        password: str,
        grant_privileges: bool,
        options: AdminOptions,
    ) -> None:
        user = f"{esc_sql_ident(username)}@{esc_sql_ident(host)}"
        create = f"CREATE USER {user}"
        if password:
            create += f" IDENTIFIED BY {esc_sql_string(password)}"
        statements = [create]
        if grant_privileges:
            statements.append(
                f"GRANT ALL PRIVILEGES ON {esc_sql_ident(self.profile.name)}.* TO {user}"
            )
            statements.append("FLUSH PRIVILEGES")
        self.run_query("; ".join(statements) + ";", options)
