"""Shared fixtures: a small WordPress-like SQLite site and its db.toml."""

import textwrap
from pathlib import Path

import pytest

from db_command.config.models import DatabaseProfile
from db_command.sqlite.translator import SQLiteTranslator


def build_site_database(path: Path) -> None:
    """Create the fixture schema and rows at ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with SQLiteTranslator(path) as translator:
        translator.query(
            "CREATE TABLE wp_posts ("
            "ID INTEGER PRIMARY KEY AUTOINCREMENT, "
            "post_title TEXT NOT NULL, "
            "post_content TEXT, "
            "menu_order INTEGER DEFAULT 0)"
        )
        translator.query("CREATE INDEX post_title_idx ON wp_posts (post_title)")
        translator.query(
            "INSERT INTO wp_posts (post_title, post_content, menu_order) "
            "VALUES ('Hello', 'First line\\nsecond line; visit example.com', 1)"
        )
        translator.query(
            "INSERT INTO wp_posts (post_title, post_content, menu_order) "
            "VALUES ('O''Brien', NULL, 2)"
        )
        translator.query("CREATE TABLE wp_options (option_name TEXT PRIMARY KEY, option_value TEXT)")
        translator.query("INSERT INTO wp_options VALUES ('siteurl', 'https://example.com')")
        translator.query("CREATE TABLE wp_empty (id INTEGER)")
        translator.query("CREATE TABLE other_log (id INTEGER, message TEXT)")
        translator.query("INSERT INTO other_log VALUES (1, 'example.com visited')")


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    """A populated SQLite database in the default wp-content location."""
    path = tmp_path / "wp-content" / "database" / ".ht.sqlite"
    build_site_database(path)
    return path


@pytest.fixture
def sqlite_profile(tmp_path: Path, db_file: Path) -> DatabaseProfile:
    return DatabaseProfile(
        name="wordpress",
        engine="sqlite",
        root_dir=str(tmp_path),
        db_path=str(db_file),
    )


@pytest.fixture
def mysql_profile() -> DatabaseProfile:
    return DatabaseProfile(
        name="wordpress",
        engine="mysql",
        host="db.local:3307",
        user="root",
        password="secret",
        charset="utf8mb4",
    )


@pytest.fixture
def config_file(tmp_path: Path, db_file: Path) -> Path:
    """db.toml with a SQLite default profile and a MySQL profile."""
    path = tmp_path / "db.toml"
    path.write_text(
        textwrap.dedent(f"""\
            default_profile = "local"

            [profiles.local]
            name = "wordpress"
            engine = "sqlite"
            root_dir = "{tmp_path}"
            db_path = "{db_file}"
            description = "Local SQLite site"

            [profiles.remote]
            name = "wordpress"
            engine = "mysql"
            host = "db.example.com"
            user = "admin"
            password = "secret"
        """)
    )
    return path
