"""Readiness check package.

This package defines the models describing checks and their results,
the fixed battery of checks for a Laravel Octane deployment, and the
runner that executes them in isolation and assembles a report.
"""

from .models import CheckContext, CheckResult, CheckSpec, ReadinessReport
from .checks import default_checks
from .runner import run_checks

__all__ = [
    "CheckContext",
    "CheckResult",
    "CheckSpec",
    "ReadinessReport",
    "default_checks",
    "run_checks",
]
