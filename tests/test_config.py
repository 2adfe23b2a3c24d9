"""Tests for db.toml loading, profile resolution and the backend factory."""

import textwrap
from pathlib import Path

import pytest

from db_command.backends.client_server import ClientServerBackend
from db_command.backends.embedded import EmbeddedBackend
from db_command.config.loader import load_db_config
from db_command.config.models import DatabaseConfig, DatabaseProfile
from db_command.errors import ConfigError, ProfileNotFoundError
from db_command.factory import (
    get_active_profile,
    get_active_profile_name,
    get_backend,
    load_config,
    resolve_config_path,
)


def two_profiles() -> DatabaseConfig:
    return DatabaseConfig(
        profiles={
            "local": DatabaseProfile(name="wp_local"),
            "staging": DatabaseProfile(name="wp_staging"),
        }
    )


class TestLoadDbConfig:
    """Tests for load_db_config() TOML parsing."""

    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db.toml"
        config_file.write_text(
            textwrap.dedent("""\
                default_profile = "dev"

                [profiles.dev]
                name = "wordpress"
                host = "127.0.0.1:3307"
                user = "wp"
                password = "secret"
                charset = "utf8mb4"
                table_prefix = "site_"
            """)
        )
        config = load_db_config(config_file)
        assert config.default_profile == "dev"
        profile = config.profiles["dev"]
        assert profile.host == "127.0.0.1:3307"
        assert profile.table_prefix == "site_"
        assert profile.engine is None

    def test_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db.toml"
        config_file.write_text('[profiles.a]\nname = "wp"\n')
        profile = load_db_config(config_file).profiles["a"]
        assert profile.host == "localhost"
        assert profile.table_prefix == "wp_"
        assert profile.resolved_content_dir == "./wp-content"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Database config not found"):
            load_db_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db.toml"
        config_file.write_text("[profiles.a\n")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_db_config(config_file)

    def test_profiles_must_be_table(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db.toml"
        config_file.write_text('profiles = "nope"\n')
        with pytest.raises(ValueError, match="must be a table"):
            load_db_config(config_file)


class TestLoadConfig:
    """Loader failures surface as ConfigError."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Database config not found"):
            load_config(tmp_path / "db.toml")

    def test_invalid_engine(self, tmp_path: Path) -> None:
        config_file = tmp_path / "db.toml"
        config_file.write_text('[profiles.a]\nname = "wp"\nengine = "oracle"\n')
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)


class TestResolveConfigPath:
    def test_argument_wins(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        env = {"DB_CONFIG": "/elsewhere.toml"}
        assert resolve_config_path(path, environ=env) == path

    def test_env_var_with_prefix(self) -> None:
        env = {"SITE_DB_CONFIG": "/etc/site/db.toml"}
        assert resolve_config_path(None, "SITE_", env) == Path("/etc/site/db.toml")

    def test_cwd_default(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_config_path(None, environ={}) == tmp_path / "db.toml"


class TestGetActiveProfileName:
    """Profile selection priority."""

    def test_argument(self) -> None:
        env = {"DB_PROFILE": "staging"}
        assert get_active_profile_name(two_profiles(), "local", environ=env) == "local"

    def test_env_var(self) -> None:
        env = {"DB_PROFILE": "staging"}
        assert get_active_profile_name(two_profiles(), environ=env) == "staging"

    def test_env_prefix(self) -> None:
        env = {"DB_PROFILE": "local", "WP_DB_PROFILE": "staging"}
        assert get_active_profile_name(two_profiles(), None, "WP_", env) == "staging"

    def test_default_profile(self) -> None:
        config = two_profiles()
        config.default_profile = "staging"
        assert get_active_profile_name(config, environ={}) == "staging"

    def test_single_profile(self) -> None:
        config = DatabaseConfig(profiles={"only": DatabaseProfile(name="wp")})
        assert get_active_profile_name(config, environ={}) == "only"

    def test_ambiguous(self) -> None:
        with pytest.raises(ProfileNotFoundError, match="Available profiles: local, staging"):
            get_active_profile_name(two_profiles(), environ={})


class TestGetActiveProfile:
    def test_resolves_profile(self, config_file: Path) -> None:
        name, profile = get_active_profile(config_file, environ={})
        assert name == "local"
        assert profile.engine == "sqlite"

    def test_explicit_profile(self, config_file: Path) -> None:
        name, profile = get_active_profile(config_file, "remote", environ={})
        assert name == "remote"
        assert profile.host == "db.example.com"

    def test_unknown_profile(self, config_file: Path) -> None:
        with pytest.raises(ProfileNotFoundError, match="Profile 'prod' not found in db.toml"):
            get_active_profile(config_file, "prod", environ={})


class TestGetBackend:
    """Backend choice follows engine detection."""

    def test_sqlite_profile(self, sqlite_profile: DatabaseProfile, db_file: Path) -> None:
        backend = get_backend(sqlite_profile, environ={})
        assert isinstance(backend, EmbeddedBackend)
        assert backend.db_path == db_file

    def test_mysql_profile(self, mysql_profile: DatabaseProfile) -> None:
        backend = get_backend(mysql_profile, environ={})
        assert isinstance(backend, ClientServerBackend)

    def test_env_switches_to_sqlite(self, tmp_path: Path) -> None:
        profile = DatabaseProfile(name="wp", root_dir=str(tmp_path))
        backend = get_backend(profile, environ={"SQLITE_DB_DROPIN_VERSION": "2.1.13"})
        assert isinstance(backend, EmbeddedBackend)
        assert backend.db_path == tmp_path / "wp-content" / "database" / ".ht.sqlite"
