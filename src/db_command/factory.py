"""Profile resolution and backend factory.

The active profile is resolved once per invocation, then handed to
``get_backend``, which decides the engine and builds the matching backend.

Usage:
    from db_command.factory import get_active_profile, get_backend

    profile_name, profile = get_active_profile(profile_name="local")
    backend = get_backend(profile)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from db_command.backends.base import DatabaseBackend
from db_command.backends.client_server import ClientServerBackend
from db_command.backends.embedded import EmbeddedBackend
from db_command.backends.selector import Engine, detect_engine, sqlite_db_path
from db_command.config.loader import load_db_config
from db_command.config.models import DatabaseConfig, DatabaseProfile
from db_command.errors import ConfigError, ProfileNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = ""


# ============================================================================
# Profile Resolution
# ============================================================================


def resolve_config_path(
    config_path: Path | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Decide which config file to read.

    Priority:
    1. ``config_path`` argument (``--config``)
    2. ``<prefix>DB_CONFIG`` env var
    3. ``./db.toml``
    """
    if config_path is not None:
        return config_path
    if environ is None:
        environ = os.environ
    env_path = environ.get(f"{env_prefix}DB_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.cwd() / "db.toml"


def load_config(config_path: Path) -> DatabaseConfig:
    """Load the config file, turning every failure into ``ConfigError``."""
    try:
        return load_db_config(config_path)
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    except ValueError as e:
        # pydantic's ValidationError is a ValueError too
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def get_active_profile_name(
    config: DatabaseConfig,
    profile_name: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Get the active profile name.

    Priority:
    1. ``profile_name`` argument (``--profile``)
    2. ``<prefix>DB_PROFILE`` env var
    3. ``default_profile`` from db.toml
    4. the only profile, when exactly one is configured

    Raises:
        ProfileNotFoundError: If no profile can be chosen
    """
    if profile_name:
        return profile_name

    if environ is None:
        environ = os.environ
    env_profile = environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    if config.default_profile:
        return config.default_profile

    if len(config.profiles) == 1:
        return next(iter(config.profiles))

    available = ", ".join(config.profiles.keys()) or "(none)"
    raise ProfileNotFoundError(
        "No database profile selected.\n"
        f"Use --profile <name> or set {env_prefix}DB_PROFILE.\n"
        f"Available profiles: {available}"
    )


def get_active_profile(
    config_path: Path | None = None,
    profile_name: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ConfigError: If the config file is missing or invalid
        ProfileNotFoundError: If no profile is selected or the name is unknown
    """
    path = resolve_config_path(config_path, env_prefix, environ)
    config = load_config(path)
    name = get_active_profile_name(config, profile_name, env_prefix, environ)

    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in {path.name}.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return name, config.profiles[name]


# ============================================================================
# Backend Factory
# ============================================================================


def get_backend(
    profile: DatabaseProfile,
    environ: Mapping[str, str] | None = None,
) -> DatabaseBackend:
    """Build the backend that serves ``profile``.

    The engine is detected once here and the result passed to the chosen
    backend; nothing downstream re-checks it.
    """
    engine = detect_engine(profile, environ)
    logger.debug("Using %s backend for database '%s'", engine.value, profile.name)

    if engine is Engine.SQLITE:
        return EmbeddedBackend(profile, sqlite_db_path(profile))
    return ClientServerBackend(profile)
