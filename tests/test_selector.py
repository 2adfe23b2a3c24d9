"""Tests for engine detection and SQLite drop-in discovery."""

from pathlib import Path

import pytest

from db_command.backends.selector import (
    Engine,
    check_sqlite_plugin,
    detect_engine,
    get_sqlite_plugin_version,
    sqlite_db_path,
)
from db_command.config.models import DatabaseProfile
from db_command.errors import BackendError

DROPIN = "<?php\ndefine( 'SQLITE_DB_DROPIN_VERSION', '2.1.13' );\n"


def site_profile(root: Path, **overrides) -> DatabaseProfile:
    return DatabaseProfile(name="wordpress", root_dir=str(root), **overrides)


def install_plugin(root: Path, version: str, folder: str = "plugins") -> None:
    plugin = root / "wp-content" / folder / "sqlite-database-integration"
    plugin.mkdir(parents=True)
    (plugin / "readme.txt").write_text(
        f"=== SQLite Database Integration ===\nRequires PHP: 7.2\nStable tag: {version}\n"
    )


def install_dropin(root: Path, contents: str = DROPIN) -> None:
    content = root / "wp-content"
    content.mkdir(parents=True, exist_ok=True)
    (content / "db.php").write_text(contents)


class TestDetectEngine:
    """First matching rule decides the engine."""

    def test_defaults_to_mysql(self, tmp_path: Path) -> None:
        assert detect_engine(site_profile(tmp_path), environ={}) is Engine.MYSQL

    def test_profile_engine_wins(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        assert detect_engine(site_profile(tmp_path, engine="mysql"), environ={}) is Engine.MYSQL
        assert detect_engine(site_profile(tmp_path, engine="sqlite"), environ={}) is Engine.SQLITE

    def test_environment_variable(self, tmp_path: Path) -> None:
        env = {"SQLITE_DB_DROPIN_VERSION": "2.1.13"}
        assert detect_engine(site_profile(tmp_path), environ=env) is Engine.SQLITE

    def test_empty_environment_variable_ignored(self, tmp_path: Path) -> None:
        env = {"SQLITE_DB_DROPIN_VERSION": ""}
        assert detect_engine(site_profile(tmp_path), environ=env) is Engine.MYSQL

    def test_dropin_with_marker(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        assert detect_engine(site_profile(tmp_path), environ={}) is Engine.SQLITE

    def test_unrelated_dropin(self, tmp_path: Path) -> None:
        """A db.php from another plugin does not switch engines."""
        install_dropin(tmp_path, "<?php // HyperDB\n")
        assert detect_engine(site_profile(tmp_path), environ={}) is Engine.MYSQL

    def test_custom_content_dir(self, tmp_path: Path) -> None:
        content = tmp_path / "content"
        content.mkdir()
        (content / "db.php").write_text(DROPIN)
        profile = site_profile(tmp_path, content_dir=str(content))
        assert detect_engine(profile, environ={}) is Engine.SQLITE


class TestSqliteDbPath:
    """Database file lookup."""

    def test_explicit_path(self, tmp_path: Path) -> None:
        profile = site_profile(tmp_path, db_path="/srv/site.db")
        assert sqlite_db_path(profile) == Path("/srv/site.db")

    def test_default_location(self, tmp_path: Path) -> None:
        expected = tmp_path / "wp-content" / "database" / ".ht.sqlite"
        assert sqlite_db_path(site_profile(tmp_path)) == expected

    def test_db_dir_and_file(self, tmp_path: Path) -> None:
        db = tmp_path / "data" / "site.sqlite"
        db.parent.mkdir()
        db.touch()
        profile = site_profile(tmp_path, db_dir=str(tmp_path / "data"), db_file="site.sqlite")
        assert sqlite_db_path(profile) == db

    def test_fallback_locations(self, tmp_path: Path) -> None:
        (tmp_path / "wp-content").mkdir()
        legacy = tmp_path / "wp-content" / ".ht.sqlite"
        legacy.touch()
        assert sqlite_db_path(site_profile(tmp_path)) == legacy

    def test_root_fallback(self, tmp_path: Path) -> None:
        root_db = tmp_path / ".ht.sqlite"
        root_db.touch()
        assert sqlite_db_path(site_profile(tmp_path)) == root_db


class TestPluginVersion:
    """Version guard for the SQLite integration plugin."""

    def test_no_dropin_passes(self, tmp_path: Path) -> None:
        check_sqlite_plugin(site_profile(tmp_path))

    def test_missing_plugin(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        with pytest.raises(BackendError, match="Could not locate"):
            check_sqlite_plugin(site_profile(tmp_path))

    def test_unversioned_dropin(self, tmp_path: Path) -> None:
        install_dropin(tmp_path, "<?php // SQLITE_DB_DROPIN_VERSION\n")
        install_plugin(tmp_path, "2.1.13")
        with pytest.raises(BackendError, match="Could not determine the version"):
            check_sqlite_plugin(site_profile(tmp_path))

    def test_old_plugin(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        install_plugin(tmp_path, "2.1.9")
        with pytest.raises(BackendError, match="must be version 2.1.11 or higher"):
            check_sqlite_plugin(site_profile(tmp_path))

    def test_recent_plugin(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        install_plugin(tmp_path, "2.1.13")
        check_sqlite_plugin(site_profile(tmp_path))
        assert get_sqlite_plugin_version(site_profile(tmp_path)) == "2.1.13"

    def test_mu_plugin_location(self, tmp_path: Path) -> None:
        install_dropin(tmp_path)
        install_plugin(tmp_path, "2.2.0", folder="mu-plugins")
        assert get_sqlite_plugin_version(site_profile(tmp_path)) == "2.2.0"
