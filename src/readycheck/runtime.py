"""Capability queries against the deployed runtime.

Checks never inspect the runtime directly.  They go through a
:class:`Runtime`, which answers the same questions (version, loaded
features, timezone, external tool output) for whatever platform is
being verified.  :class:`PhpRuntime` answers them for a PHP deployment by
invoking the PHP command-line binary.
"""

from __future__ import annotations

import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence

from .config import COMMAND_TIMEOUT, DEFAULT_PHP_BINARY
from .errors import ToolMissing


class Runtime(ABC):
    """Interface for querying a target runtime.

    Subclasses implement the platform-specific queries.  Running external
    tools and reading files work the same everywhere and are provided
    here.
    """

    @abstractmethod
    def version(self) -> str:
        """Return the runtime's version string."""

    @abstractmethod
    def default_timezone(self) -> str:
        """Return the timezone the runtime uses for date functions."""

    @abstractmethod
    def is_feature_available(self, name: str) -> bool:
        """Return whether the named extension or feature is loaded."""

    def tool_output(self, argv: Sequence[str]) -> Optional[str]:
        """Run an external command and return its combined output.

        Returns ``None`` when the executable cannot be found, the command
        times out or it prints nothing.
        """
        try:
            completed = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=COMMAND_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired):
            return None
        output = completed.stdout
        if not output or not output.strip():
            return None
        return output

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")


class PhpRuntime(Runtime):
    """Query a PHP installation through its CLI binary.

    The module list from ``php -m`` is read once per instance and then
    only read, so every extension lookup after the first is a set
    membership test.
    """

    def __init__(self, binary: str = DEFAULT_PHP_BINARY) -> None:
        self.binary = binary
        self._extensions: Optional[FrozenSet[str]] = None
        self._extensions_lock = threading.Lock()

    def _eval(self, code: str) -> str:
        output = self.tool_output([self.binary, "-r", code])
        if output is None:
            raise ToolMissing(f"PHP binary '{self.binary}' is not available")
        return output.strip()

    def version(self) -> str:
        return self._eval("echo PHP_VERSION;")

    def default_timezone(self) -> str:
        return self._eval("echo date_default_timezone_get();")

    def loaded_extensions(self) -> FrozenSet[str]:
        """Return the lower-cased module names reported by ``php -m``.

        A failed lookup is not remembered; the next call runs ``php -m``
        again.
        """
        with self._extensions_lock:
            if self._extensions is None:
                output = self.tool_output([self.binary, "-m"])
                if output is None:
                    raise ToolMissing(f"PHP binary '{self.binary}' is not available")
                self._extensions = frozenset(parse_module_list(output))
            return self._extensions

    def is_feature_available(self, name: str) -> bool:
        return name.lower() in self.loaded_extensions()


def parse_module_list(output: str) -> List[str]:
    """Parse ``php -m`` output into lower-cased module names.

    Section headers such as ``[PHP Modules]`` and blank lines are skipped.
    """
    modules = []
    for line in output.splitlines():
        name = line.strip()
        if not name or (name.startswith("[") and name.endswith("]")):
            continue
        modules.append(name.lower())
    return modules


__all__ = ["Runtime", "PhpRuntime", "parse_module_list"]
