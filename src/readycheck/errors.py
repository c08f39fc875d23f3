"""Exception types raised by readycheck.

Probe failures are expressed as :class:`ProbeError` subclasses.  The
runner turns each of them into a failed :class:`CheckResult` and never
lets them escape a run.  :class:`ConfigError` is raised while resolving
the environment configuration, before any check starts.
"""

from __future__ import annotations


class ReadycheckError(Exception):
    """Base class for all readycheck errors."""


class ConfigError(ReadycheckError, ValueError):
    """An environment override could not be interpreted."""


class ProbeError(ReadycheckError):
    """A probe ran to completion and found the environment not ready."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConnectionFailure(ProbeError):
    """A socket or client connection could not be established."""


class ProtocolMismatch(ProbeError):
    """Connected, but the peer answered with an unexpected reply."""


class ValueMismatch(ProbeError):
    """A version, timezone or extension did not match the expected value."""


class ToolMissing(ProbeError):
    """An external tool produced no output or unexpected output."""


class ProbeTimeout(ProbeError):
    """A probe did not complete within its timeout."""


__all__ = [
    "ReadycheckError",
    "ConfigError",
    "ProbeError",
    "ConnectionFailure",
    "ProtocolMismatch",
    "ValueMismatch",
    "ToolMissing",
    "ProbeTimeout",
]
