"""
Configuration for readycheck.

The expected runtime properties of the environment (minimum PHP version,
required extensions, timezone, application server port) are compiled-in
constants.  Connection parameters for the database and cache store are
resolved once per run into an :class:`EnvironmentConfig`, each field
falling back to a literal default when its environment variable is unset
or empty.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from .errors import ConfigError

logger = structlog.get_logger(__name__)

PROJECT_NAME: Final[str] = "readycheck"

MIN_PHP_VERSION: Final[str] = "8.3.0"

# Extensions every deployment must load.  Names are compared
# case-insensitively against ``php -m``.
REQUIRED_PHP_EXTENSIONS: Final[list[str]] = [
    "bcmath",
    "ctype",
    "curl",
    "dom",
    "exif",
    "fileinfo",
    "gd",
    "intl",
    "mbstring",
    "openssl",
    "pcntl",
    "pdo",
    "pdo_mysql",
    "sockets",
    "xml",
    "zip",
]

SWOOLE_EXTENSION: Final[str] = "swoole"
OPCACHE_EXTENSION: Final[str] = "Zend OPcache"

EXPECTED_TIMEZONE: Final[str] = "America/Sao_Paulo"
SYSTEM_TIMEZONE_FILE: Final[Path] = Path("/etc/timezone")

OCTANE_HOST: Final[str] = "127.0.0.1"
OCTANE_PORT: Final[int] = 8000

REDIS_PING_REPLY: Final[str] = "+PONG"

COMPOSER_COMMAND: Final[list[str]] = ["composer", "--version"]
COMPOSER_MARKER: Final[str] = "Composer"

# Per-check timeouts in seconds.
SOCKET_TIMEOUT: Final[float] = 3.0
OCTANE_TIMEOUT: Final[float] = 2.0
DEFAULT_CHECK_TIMEOUT: Final[float] = 3.0
COMMAND_TIMEOUT: Final[float] = 10.0

DEFAULT_DB_HOST: Final[str] = "mysql"
DEFAULT_DB_PORT: Final[int] = 3306
DEFAULT_DB_DATABASE: Final[str] = "goodparty"
DEFAULT_DB_USERNAME: Final[str] = "goodparty"
DEFAULT_DB_PASSWORD: Final[str] = "secret"
DEFAULT_REDIS_HOST: Final[str] = "redis"
DEFAULT_REDIS_PORT: Final[int] = 6379
DEFAULT_APP_URL: Final[str] = "http://localhost"
DEFAULT_PHP_BINARY: Final[str] = "php"


class EnvironmentConfig(BaseModel):
    """Connection parameters resolved once at the start of a run."""

    model_config = ConfigDict(frozen=True)

    db_host: str = DEFAULT_DB_HOST
    db_port: int = DEFAULT_DB_PORT
    db_database: str = DEFAULT_DB_DATABASE
    db_username: str = DEFAULT_DB_USERNAME
    db_password: str = DEFAULT_DB_PASSWORD
    redis_host: str = DEFAULT_REDIS_HOST
    redis_port: int = DEFAULT_REDIS_PORT
    app_url: str = DEFAULT_APP_URL
    php_binary: str = DEFAULT_PHP_BINARY
    timezone_file: Path = SYSTEM_TIMEZONE_FILE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from.  Defaults to ``os.environ``.

        Raises:
            ConfigError: If a port override is not an integer.
        """
        env = os.environ if environ is None else environ
        database = _get(env, "DB_DATABASE", DEFAULT_DB_DATABASE)
        # Test runners may point the database at SQLite's in-memory name.
        if database == ":memory:":
            logger.debug("in-memory database name replaced", var="DB_DATABASE", database=DEFAULT_DB_DATABASE)
            database = DEFAULT_DB_DATABASE
        return cls(
            db_host=_get(env, "DB_HOST", DEFAULT_DB_HOST),
            db_port=_get_port(env, "DB_PORT", DEFAULT_DB_PORT),
            db_database=database,
            db_username=_get(env, "DB_USERNAME", DEFAULT_DB_USERNAME),
            db_password=_get(env, "DB_PASSWORD", DEFAULT_DB_PASSWORD),
            redis_host=_get(env, "REDIS_HOST", DEFAULT_REDIS_HOST),
            redis_port=_get_port(env, "REDIS_PORT", DEFAULT_REDIS_PORT),
            app_url=_get(env, "APP_URL", DEFAULT_APP_URL),
            php_binary=_get(env, "PHP_BINARY", DEFAULT_PHP_BINARY),
        )

    def sanitized(self) -> dict:
        """Return the config as a dict without the database password."""
        data = self.model_dump(mode="json")
        data.pop("db_password", None)
        data["db_password_set"] = bool(self.db_password)
        return data


def _get(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key)
    if not value:
        logger.debug("env var unset, using default", var=key)
        return default
    return value


def _get_port(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _get(env, key, str(default))
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer port, got: {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{key} must be between 1 and 65535, got: {port}")
    return port


__all__ = [
    "PROJECT_NAME",
    "MIN_PHP_VERSION",
    "REQUIRED_PHP_EXTENSIONS",
    "SWOOLE_EXTENSION",
    "OPCACHE_EXTENSION",
    "EXPECTED_TIMEZONE",
    "SYSTEM_TIMEZONE_FILE",
    "OCTANE_HOST",
    "OCTANE_PORT",
    "REDIS_PING_REPLY",
    "COMPOSER_COMMAND",
    "COMPOSER_MARKER",
    "SOCKET_TIMEOUT",
    "OCTANE_TIMEOUT",
    "DEFAULT_CHECK_TIMEOUT",
    "COMMAND_TIMEOUT",
    "EnvironmentConfig",
]
