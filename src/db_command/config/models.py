"""Pydantic models for database configuration."""

from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    name: str                                   # database name
    engine: Literal["mysql", "sqlite"] | None = None  # None -> auto-detect
    host: str = "localhost"
    user: str = ""
    password: str = ""
    charset: str = ""
    collate: str = ""
    table_prefix: str = "wp_"
    description: str = ""

    # Site layout, used for drop-in detection and SQLite file lookup
    root_dir: str = "."
    content_dir: str = ""                       # defaults to <root_dir>/wp-content

    # SQLite file location overrides
    db_dir: str = ""
    db_file: str = ".ht.sqlite"
    db_path: str = ""

    @property
    def resolved_content_dir(self) -> str:
        """Content directory, falling back to ``<root_dir>/wp-content``."""
        if self.content_dir:
            return self.content_dir
        return f"{self.root_dir.rstrip('/')}/wp-content"


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    default_profile: str | None = None
