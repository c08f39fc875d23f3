"""Execute readiness checks and assemble a report.

Every check runs on its own daemon thread so that a probe that hangs
cannot hold up the others or keep the process alive.  The runner waits
at most ``spec.timeout`` seconds for each probe and records anything
still running at its deadline as a failure.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import structlog

from ..errors import ProbeError, ProbeTimeout
from .models import CheckContext, CheckResult, CheckSpec, ReadinessReport

logger = structlog.get_logger(__name__)


@dataclass
class _Execution:
    spec: CheckSpec
    thread: threading.Thread
    started: float
    outcome: List[CheckResult] = field(default_factory=list)


def validate_specs(specs: Sequence[CheckSpec]) -> None:
    """Reject a malformed check list before anything runs.

    Raises:
        ValueError: On empty or duplicate names, non-callable probes or
            non-positive timeouts.
    """
    seen = set()
    for spec in specs:
        if not spec.name:
            raise ValueError("Check name must not be empty")
        if spec.name in seen:
            raise ValueError(f"Duplicate check name: {spec.name}")
        if not callable(spec.probe):
            raise ValueError(f"Probe for check {spec.name} is not callable")
        if spec.timeout <= 0:
            raise ValueError(f"Timeout for check {spec.name} must be positive, got {spec.timeout}")
        seen.add(spec.name)


def run_check(spec: CheckSpec, context: CheckContext) -> CheckResult:
    """Run one probe in the calling thread and capture its outcome."""
    log = logger.bind(check=spec.name)
    log.debug("check started")
    start = time.perf_counter()
    try:
        spec.probe(context)
    except ProbeError as exc:
        result = CheckResult(
            name=spec.name,
            status="FAIL",
            message=str(exc),
            error_kind=exc.kind,
            duration_ms=_elapsed_ms(start),
        )
    except Exception as exc:
        log.warning("check raised unexpected exception", exc_info=True)
        result = CheckResult(
            name=spec.name,
            status="FAIL",
            message=f"{type(exc).__name__}: {exc}",
            error_kind=type(exc).__name__,
            duration_ms=_elapsed_ms(start),
        )
    else:
        result = CheckResult(name=spec.name, status="PASS", duration_ms=_elapsed_ms(start))
    log.debug("check finished", status=result.status, duration_ms=result.duration_ms)
    return result


def run_checks(
    specs: Sequence[CheckSpec],
    context: CheckContext,
    *,
    run_id: Optional[str] = None,
) -> ReadinessReport:
    """Run all checks concurrently and return the report.

    Results appear in the order of ``specs`` regardless of which probe
    finishes first.  Failures of individual checks never propagate.

    Raises:
        ValueError: If ``specs`` is malformed (see :func:`validate_specs`).
    """
    validate_specs(specs)
    executions = [_start(spec, context) for spec in specs]
    results = [_collect(execution) for execution in executions]
    return ReadinessReport(
        run_id=run_id or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        generated_at=datetime.now(timezone.utc).replace(microsecond=0),
        checks=results,
        environment=context.config.sanitized(),
    )


def _start(spec: CheckSpec, context: CheckContext) -> _Execution:
    outcome: List[CheckResult] = []
    thread = threading.Thread(
        target=lambda: outcome.append(run_check(spec, context)),
        name=f"readycheck-{spec.name}",
        daemon=True,
    )
    execution = _Execution(spec=spec, thread=thread, started=time.monotonic(), outcome=outcome)
    thread.start()
    return execution


def _collect(execution: _Execution) -> CheckResult:
    spec = execution.spec
    remaining = execution.started + spec.timeout - time.monotonic()
    execution.thread.join(max(remaining, 0.0))
    if execution.outcome:
        return execution.outcome[0]
    if not execution.thread.is_alive():
        return CheckResult(
            name=spec.name,
            status="FAIL",
            message="Probe exited without producing a result",
            error_kind="ProbeAborted",
        )
    # The thread is abandoned; as a daemon it cannot block interpreter exit.
    logger.warning("check timed out", check=spec.name, timeout=spec.timeout)
    return CheckResult(
        name=spec.name,
        status="FAIL",
        message=f"Check timed out after {spec.timeout:g}s",
        error_kind=ProbeTimeout.__name__,
        duration_ms=round(spec.timeout * 1000, 1),
    )


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


__all__ = ["run_check", "run_checks", "validate_specs"]
