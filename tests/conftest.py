"""Shared fixtures for the readycheck tests."""

from __future__ import annotations

import socket
import threading
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

import pytest

from readycheck.config import EnvironmentConfig
from readycheck.health.models import CheckContext
from readycheck.runtime import Runtime


class FakeRuntime(Runtime):
    """In-memory runtime used in place of a PHP installation."""

    def __init__(
        self,
        version: str = "8.3.4",
        extensions: Optional[Sequence[str]] = None,
        timezone: str = "America/Sao_Paulo",
        tools: Optional[dict] = None,
    ) -> None:
        self._version = version
        self._extensions = {ext.lower() for ext in (extensions or [])}
        self._timezone = timezone
        self._tools = tools or {}

    def version(self) -> str:
        return self._version

    def default_timezone(self) -> str:
        return self._timezone

    def is_feature_available(self, name: str) -> bool:
        return name.lower() in self._extensions

    def tool_output(self, argv: Sequence[str]) -> Optional[str]:
        return self._tools.get(argv[0])


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., CheckContext]:
    """Build a CheckContext around a FakeRuntime.

    Keyword arguments are split between the runtime and the config: any
    key that is an EnvironmentConfig field goes to the config.
    """

    def _make(**kwargs) -> CheckContext:
        config_fields = {k: kwargs.pop(k) for k in list(kwargs) if k in EnvironmentConfig.model_fields}
        config_fields.setdefault("timezone_file", tmp_path / "timezone")
        return CheckContext(config=EnvironmentConfig(**config_fields), runtime=FakeRuntime(**kwargs))

    return _make


@pytest.fixture
def line_server() -> Iterator[Callable[[bytes], int]]:
    """Start loopback servers that answer the first line they read.

    The fixture yields a factory taking the raw reply bytes and returning
    the port of a server that reads one line and sends the reply.
    """
    servers: List[socket.socket] = []
    received: List[bytes] = []

    def _serve(listener: socket.socket, reply: bytes) -> None:
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            with conn.makefile("rb") as reader:
                received.append(reader.readline())
            conn.sendall(reply)

    def _start(reply: bytes) -> int:
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        servers.append(listener)
        threading.Thread(target=_serve, args=(listener, reply), daemon=True).start()
        return listener.getsockname()[1]

    _start.received = received  # type: ignore[attr-defined]
    yield _start
    for listener in servers:
        listener.close()


@pytest.fixture
def closed_port() -> int:
    """Return a loopback port that nothing is listening on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def stalled_server() -> Iterator[Callable[[bytes], int]]:
    """Start loopback servers that accept, send some bytes and then hang.

    The yielded factory takes the bytes to send right after accepting
    (possibly empty) and returns the port.  The connection stays open
    without further traffic until the test finishes, so clients only
    return through their own timeouts.
    """
    listeners: List[socket.socket] = []
    done = threading.Event()

    def _serve(listener: socket.socket, greeting: bytes) -> None:
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            if greeting:
                conn.sendall(greeting)
            done.wait(30)

    def _start(greeting: bytes) -> int:
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        listeners.append(listener)
        threading.Thread(target=_serve, args=(listener, greeting), daemon=True).start()
        return listener.getsockname()[1]

    yield _start
    done.set()
    for listener in listeners:
        listener.close()
