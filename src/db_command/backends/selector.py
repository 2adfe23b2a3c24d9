"""Backend detection and SQLite drop-in discovery.

The engine is decided once per invocation by ``detect_engine``; the first
rule that matches wins:

1. the profile sets ``engine = "sqlite"``
2. the ``SQLITE_DB_DROPIN_VERSION`` environment variable is set
3. ``<content_dir>/db.php`` exists and mentions ``SQLITE_DB_DROPIN_VERSION``

Otherwise the client/server (MySQL) backend is used.
"""

import logging
import os
import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from db_command.config.models import DatabaseProfile
from db_command.errors import BackendError

logger = logging.getLogger(__name__)

DROPIN_MARKER = "SQLITE_DB_DROPIN_VERSION"
PLUGIN_SLUG = "sqlite-database-integration"
MIN_PLUGIN_VERSION = "2.1.11"

_DROPIN_DEFINE_RE = re.compile(r"define\( 'SQLITE_DB_DROPIN_VERSION', '([0-9.]+)' \)")
_STABLE_TAG_RE = re.compile(r"^Stable tag:\s*?(.+)$", re.MULTILINE)


class Engine(str, Enum):
    """Database engine families."""

    MYSQL = "mysql"
    SQLITE = "sqlite"


def dropin_path(profile: DatabaseProfile) -> Path:
    return Path(profile.resolved_content_dir) / "db.php"


def detect_engine(
    profile: DatabaseProfile,
    environ: Mapping[str, str] | None = None,
) -> Engine:
    """Decide which backend serves this profile.

    Args:
        profile: Active database profile.
        environ: Environment to consult (default: ``os.environ``).

    Returns:
        ``Engine.SQLITE`` or ``Engine.MYSQL``.
    """
    if environ is None:
        environ = os.environ

    if profile.engine == Engine.SQLITE.value:
        return Engine.SQLITE
    if profile.engine == Engine.MYSQL.value:
        return Engine.MYSQL

    if environ.get(DROPIN_MARKER):
        logger.debug("%s is set, using SQLite", DROPIN_MARKER)
        return Engine.SQLITE

    path = dropin_path(profile)
    if path.is_file():
        contents = path.read_text(encoding="utf-8", errors="replace")
        if DROPIN_MARKER in contents:
            logger.debug("SQLite drop-in found at %s", path)
            return Engine.SQLITE

    return Engine.MYSQL


def sqlite_db_path(profile: DatabaseProfile) -> Path:
    """Locate the SQLite database file for a profile.

    Priority:
    1. ``db_path`` when set
    2. ``<db_dir or content_dir/database>/<db_file>`` when it exists
    3. the first existing well-known location
    4. the default path from rule 2, even if it does not exist yet
    """
    if profile.db_path:
        return Path(profile.db_path)

    content_dir = Path(profile.resolved_content_dir)
    db_dir = Path(profile.db_dir) if profile.db_dir else content_dir / "database"
    db_path = db_dir / profile.db_file.lstrip("/")
    if db_path.exists():
        return db_path

    for alt_path in (
        content_dir / "database" / ".ht.sqlite",
        content_dir / ".ht.sqlite",
        Path(profile.root_dir) / ".ht.sqlite",
    ):
        if alt_path.exists():
            return alt_path

    return db_path


def get_plugin_directory(profile: DatabaseProfile) -> Path | None:
    """Find the installed SQLite integration plugin, if any."""
    content_dir = Path(profile.resolved_content_dir)
    for folder in (
        content_dir / "plugins" / PLUGIN_SLUG,
        content_dir / "mu-plugins" / PLUGIN_SLUG,
    ):
        if folder.is_dir():
            return folder
    return None


def get_sqlite_plugin_version(profile: DatabaseProfile) -> str | None:
    """Version of the SQLite integration plugin behind the drop-in.

    Returns:
        The ``Stable tag`` from the plugin readme, or ``None`` if the drop-in
        or the plugin cannot be found.
    """
    path = dropin_path(profile)
    if not path.is_file():
        return None
    if not _DROPIN_DEFINE_RE.search(path.read_text(encoding="utf-8", errors="replace")):
        return None

    plugin_dir = get_plugin_directory(profile)
    if plugin_dir is None:
        return None

    readme = plugin_dir / "readme.txt"
    if not readme.is_file():
        return None
    match = _STABLE_TAG_RE.search(readme.read_text(encoding="utf-8", errors="replace"))
    return match.group(1).strip() if match else None


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for piece in version.split("."):
        digits = re.match(r"\d+", piece)
        parts.append(int(digits.group(0)) if digits else 0)
    return tuple(parts)


def check_sqlite_plugin(profile: DatabaseProfile) -> None:
    """Require a recent enough SQLite integration plugin when a drop-in is installed.

    Profiles without a drop-in file are served by the bundled translator and
    pass unchecked.

    Raises:
        BackendError: If the plugin is missing, unversioned, or too old.
    """
    if not dropin_path(profile).is_file():
        return

    if get_plugin_directory(profile) is None:
        raise BackendError("Could not locate the SQLite integration plugin.")

    version = get_sqlite_plugin_version(profile)
    if not version:
        raise BackendError("Could not determine the version of the SQLite integration plugin.")

    if _version_tuple(version) < _version_tuple(MIN_PLUGIN_VERSION):
        raise BackendError(
            f"The SQLite integration plugin must be version {MIN_PLUGIN_VERSION} or higher."
        )
