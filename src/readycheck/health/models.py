"""Models for the readiness check.

A :class:`CheckSpec` declares one probe.  Running it yields a
:class:`CheckResult`, and a run over the whole suite yields a
:class:`ReadinessReport` whose status is derived from its results.
Results and reports are pydantic models so they serialise straight to
JSON for the ``--json`` and ``--out`` options of the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..config import DEFAULT_CHECK_TIMEOUT, EnvironmentConfig
from ..runtime import Runtime

# PASS means the environment satisfies the check.  FAIL carries a
# human-readable message explaining what was found instead.
CheckStatus = Literal["PASS", "FAIL"]


@dataclass(frozen=True)
class CheckContext:
    """Dependencies handed to every probe."""

    config: EnvironmentConfig
    runtime: Runtime


@dataclass(frozen=True)
class CheckSpec:
    """Declarative description of a single probe.

    The probe returns normally when the check passes and raises a
    :class:`readycheck.errors.ProbeError` describing the problem when it
    does not.
    """

    name: str
    description: str
    probe: Callable[[CheckContext], None]
    timeout: float = DEFAULT_CHECK_TIMEOUT


class CheckResult(BaseModel):
    """Outcome of running one check.

    Attributes:
        name: Name of the :class:`CheckSpec` that produced the result.
        status: PASS or FAIL.
        message: Diagnostic text, set for failures.
        error_kind: Name of the error class behind a failure.
        duration_ms: Wall-clock time spent in the probe.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    status: CheckStatus
    message: Optional[str] = None
    error_kind: Optional[str] = None
    duration_ms: Optional[float] = None

    @property
    def passed(self) -> bool:
        return self.status == "PASS"


class ReadinessReport(BaseModel):
    """All results of one run, in declaration order."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    generated_at: datetime
    checks: List[CheckResult]
    environment: Dict[str, Any] = Field(default_factory=dict)

    @computed_field  # type: ignore[misc]
    @property
    def status(self) -> CheckStatus:
        return "PASS" if all(chk.passed for chk in self.checks) else "FAIL"

    @property
    def failures(self) -> List[CheckResult]:
        return [chk for chk in self.checks if not chk.passed]
