"""Readiness checks for a Laravel Octane deployment.

This module defines the fixed battery of checks that validate a deployed
environment: the PHP runtime and its extensions, the timezone settings,
MySQL and Redis connectivity, the Octane application server, HTTP
reachability and the Composer build tool.  Each check is a probe that
returns normally on success and raises a
:class:`readycheck.errors.ProbeError` describing the problem otherwise.
:func:`default_checks` assembles them in declaration order.
"""

from __future__ import annotations

from typing import List

import requests

from ..config import (
    COMMAND_TIMEOUT,
    COMPOSER_COMMAND,
    COMPOSER_MARKER,
    EXPECTED_TIMEZONE,
    MIN_PHP_VERSION,
    OCTANE_HOST,
    OCTANE_PORT,
    OCTANE_TIMEOUT,
    OPCACHE_EXTENSION,
    REDIS_PING_REPLY,
    REQUIRED_PHP_EXTENSIONS,
    SOCKET_TIMEOUT,
    SWOOLE_EXTENSION,
)
from ..errors import (
    ConnectionFailure,
    ProtocolMismatch,
    ToolMissing,
    ValueMismatch,
)
from .models import CheckContext, CheckSpec
from .probes import (
    database_url,
    describe_os_error,
    http_status,
    open_database_connection,
    redis_ping,
    tcp_reachable,
    version_at_least,
)


def check_php_version(ctx: CheckContext) -> None:
    """Check that the PHP runtime meets the minimum version."""
    version = ctx.runtime.version()
    try:
        ok = version_at_least(version, MIN_PHP_VERSION)
    except ValueError:
        ok = False
    if not ok:
        raise ValueMismatch(f"PHP version must be >= {MIN_PHP_VERSION}, got: {version}")


def check_php_extensions(ctx: CheckContext) -> None:
    """Check that every required PHP extension is loaded."""
    missing = [ext for ext in REQUIRED_PHP_EXTENSIONS if not ctx.runtime.is_feature_available(ext)]
    if missing:
        raise ValueMismatch(" ".join(f"PHP extension '{ext}' is not loaded." for ext in missing))


def check_swoole_extension(ctx: CheckContext) -> None:
    if not ctx.runtime.is_feature_available(SWOOLE_EXTENSION):
        raise ValueMismatch("Swoole extension is not loaded.")


def check_opcache(ctx: CheckContext) -> None:
    if not ctx.runtime.is_feature_available(OPCACHE_EXTENSION):
        raise ValueMismatch("OPcache is not loaded.")


def check_php_timezone(ctx: CheckContext) -> None:
    """Check the timezone PHP uses for date functions."""
    tz = ctx.runtime.default_timezone().strip()
    if tz != EXPECTED_TIMEZONE:
        raise ValueMismatch(f"PHP timezone must be {EXPECTED_TIMEZONE}, got: '{tz}'")


def check_system_timezone(ctx: CheckContext) -> None:
    """Check the operating system timezone file."""
    path = ctx.config.timezone_file
    try:
        tz = ctx.runtime.read_text(path).strip()
    except OSError as exc:
        raise ValueMismatch(f"Cannot read system timezone file {path}: {exc.strerror or exc}") from exc
    if tz != EXPECTED_TIMEZONE:
        raise ValueMismatch(
            f"System timezone ({path}) must be {EXPECTED_TIMEZONE}, got: '{tz}'"
        )


def check_mysql_connection(ctx: CheckContext) -> None:
    """Check that a MySQL connection can be opened with the configured credentials."""
    conn, error = open_database_connection(
        database_url(ctx.config),
        connect_args={
            "connect_timeout": int(SOCKET_TIMEOUT),
            "read_timeout": int(SOCKET_TIMEOUT),
            "write_timeout": int(SOCKET_TIMEOUT),
        },
    )
    if error is not None:
        raise ConnectionFailure(f"MySQL connection failed: {error}")
    conn.close()


def check_redis_connection(ctx: CheckContext) -> None:
    host, port = ctx.config.redis_host, ctx.config.redis_port
    error = tcp_reachable(host, port, SOCKET_TIMEOUT)
    if error is not None:
        raise ConnectionFailure(f"Redis connection failed on {host}:{port}: {error}")


def check_redis_ping(ctx: CheckContext) -> None:
    """Check that Redis answers PING with +PONG."""
    try:
        reply = redis_ping(ctx.config.redis_host, ctx.config.redis_port, SOCKET_TIMEOUT)
    except OSError as exc:
        raise ConnectionFailure(f"Cannot connect to Redis: {describe_os_error(exc)}") from exc
    if reply != REDIS_PING_REPLY:
        raise ProtocolMismatch(f"Redis did not respond with PONG, got: '{reply}'")


def check_octane_server(ctx: CheckContext) -> None:
    error = tcp_reachable(OCTANE_HOST, OCTANE_PORT, OCTANE_TIMEOUT)
    if error is not None:
        raise ConnectionFailure(f"Octane/Swoole is not listening on port {OCTANE_PORT}: {error}")


def check_http_root(ctx: CheckContext) -> None:
    """Check that the application root answers GET with 200."""
    url = ctx.config.app_url.rstrip("/") + "/"
    try:
        status = http_status(url, SOCKET_TIMEOUT)
    except requests.RequestException as exc:
        raise ConnectionFailure(f"HTTP request to {url} failed: {exc}") from exc
    if status != 200:
        raise ValueMismatch(f"Expected HTTP 200 from {url}, got: {status}")


def check_composer(ctx: CheckContext) -> None:
    output = ctx.runtime.tool_output(COMPOSER_COMMAND)
    if not output or COMPOSER_MARKER not in output:
        raise ToolMissing("Composer is not installed.")


def default_checks() -> List[CheckSpec]:
    """Return the fixed list of readiness checks in declaration order."""
    return [
        CheckSpec(
            "php_version",
            f"PHP version is >= {MIN_PHP_VERSION}",
            check_php_version,
            timeout=COMMAND_TIMEOUT,
        ),
        CheckSpec(
            "php_extensions",
            "Required PHP extensions are loaded",
            check_php_extensions,
            timeout=COMMAND_TIMEOUT,
        ),
        CheckSpec(
            "swoole_extension",
            "Swoole extension is loaded",
            check_swoole_extension,
            timeout=COMMAND_TIMEOUT,
        ),
        CheckSpec("opcache", "OPcache is loaded", check_opcache, timeout=COMMAND_TIMEOUT),
        CheckSpec(
            "php_timezone",
            f"PHP timezone is {EXPECTED_TIMEZONE}",
            check_php_timezone,
            timeout=COMMAND_TIMEOUT,
        ),
        CheckSpec("system_timezone", f"System timezone is {EXPECTED_TIMEZONE}", check_system_timezone),
        # The driver's connect and read timeouts fire first.
        CheckSpec(
            "mysql_connection",
            "MySQL accepts a connection",
            check_mysql_connection,
            timeout=2 * SOCKET_TIMEOUT + 1,
        ),
        CheckSpec(
            "redis_connection",
            "Redis accepts a TCP connection",
            check_redis_connection,
            timeout=SOCKET_TIMEOUT + 1,
        ),
        CheckSpec(
            "redis_ping",
            "Redis answers PING with +PONG",
            check_redis_ping,
            timeout=SOCKET_TIMEOUT + 1,
        ),
        CheckSpec(
            "octane_server",
            f"Octane is listening on port {OCTANE_PORT}",
            check_octane_server,
            timeout=OCTANE_TIMEOUT + 1,
        ),
        CheckSpec("http_root", "GET / returns 200", check_http_root, timeout=SOCKET_TIMEOUT + 1),
        CheckSpec("composer", "Composer is installed", check_composer, timeout=COMMAND_TIMEOUT + 1),
    ]
