"""Low-level probe helpers used by the readiness checks.

These functions do the actual network and parsing work.  Each one that
acquires a socket or connection releases it before returning, on every
path.
"""

from __future__ import annotations

import re
import socket
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

import requests
import sqlalchemy as sa
from sqlalchemy.engine import URL, Connection
from sqlalchemy.pool import NullPool

from ..config import EnvironmentConfig
from ..errors import ProtocolMismatch

_VERSION_RE = re.compile(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?")

# Longest reply line read from a line-oriented server.
MAX_REPLY_BYTES = 512


def parse_version(text: str) -> Tuple[int, int, int]:
    """Parse the leading ``major.minor.patch`` of a version string.

    Suffixes such as ``-1ubuntu1`` or ``RC1`` are ignored and missing
    components count as zero.

    Raises:
        ValueError: If ``text`` does not start with a number.
    """
    match = _VERSION_RE.match(text)
    if match is None:
        raise ValueError(f"Unrecognised version string: {text!r}")
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return major, minor, patch


def version_at_least(actual: str, minimum: str) -> bool:
    return parse_version(actual) >= parse_version(minimum)


@contextmanager
def open_socket(host: str, port: int, timeout: float) -> Iterator[socket.socket]:
    """Open a TCP connection and close it when the block exits.

    Raises:
        OSError: If the connection cannot be established in time.
    """
    sock = socket.create_connection((host, port), timeout=timeout)
    try:
        yield sock
    finally:
        sock.close()


def tcp_reachable(host: str, port: int, timeout: float) -> Optional[str]:
    """Return ``None`` if ``host:port`` accepts a connection, else the OS error."""
    try:
        with open_socket(host, port, timeout):
            return None
    except OSError as exc:
        return describe_os_error(exc)


def redis_ping(host: str, port: int, timeout: float) -> str:
    """Send ``PING`` over a raw socket and return the trimmed reply line.

    At most :data:`MAX_REPLY_BYTES` are read, so a peer that never sends
    a newline cannot make the read grow without bound.

    Raises:
        OSError: If the connection cannot be established.
        ProtocolMismatch: If the peer accepted the connection but the
            exchange failed or timed out.
    """
    with open_socket(host, port, timeout) as sock:
        try:
            sock.sendall(b"PING\r\n")
            with sock.makefile("rb") as reader:
                line = reader.readline(MAX_REPLY_BYTES)
        except OSError as exc:
            raise ProtocolMismatch(
                f"Redis accepted the connection but did not reply: {describe_os_error(exc)}"
            ) from exc
    return line.decode("utf-8", errors="replace").strip()


def database_url(config: EnvironmentConfig) -> URL:
    """Build the MySQL connection URL for ``config``."""
    return URL.create(
        "mysql+pymysql",
        username=config.db_username,
        password=config.db_password,
        host=config.db_host,
        port=config.db_port,
        database=config.db_database,
    )


def open_database_connection(
    url: "str | URL",
    connect_args: Optional[Dict[str, Any]] = None,
) -> Tuple[Optional[Connection], Optional[str]]:
    """Try to open a database connection.

    Returns:
        ``(connection, None)`` on success, or ``(None, error_message)``
        when the engine cannot be created or the connection fails.  The
        caller owns the returned connection and must close it.
    """
    engine = None
    try:
        engine = sa.create_engine(url, connect_args=connect_args or {}, poolclass=NullPool)
        return engine.connect(), None
    except Exception as exc:
        if engine is not None:
            engine.dispose()
        return None, _describe_db_error(exc)


def http_status(url: str, timeout: float) -> int:
    """Return the status code of ``GET url`` without following redirects."""
    response = requests.get(url, timeout=timeout, allow_redirects=False)
    try:
        return response.status_code
    finally:
        response.close()


def describe_os_error(exc: OSError) -> str:
    """Return a short human-readable description of a socket error."""
    if isinstance(exc, socket.timeout):
        return "Connection timed out"
    return exc.strerror or str(exc) or type(exc).__name__


def _describe_db_error(exc: Exception) -> str:
    # SQLAlchemy wraps driver errors; the driver message is the useful part.
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


__all__ = [
    "MAX_REPLY_BYTES",
    "describe_os_error",
    "parse_version",
    "version_at_least",
    "open_socket",
    "tcp_reachable",
    "redis_ping",
    "database_url",
    "open_database_connection",
    "http_status",
]
