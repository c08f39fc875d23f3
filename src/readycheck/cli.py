"""Command-line interface for readycheck.

This module uses the :mod:`click` library to expose the readiness
checks.  ``readycheck run`` executes the full battery against the
current environment, prints one line per check and exits non-zero when
any check fails.  ``readycheck list`` shows the available checks.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple

import click

from . import __version__
from .config import EnvironmentConfig
from .errors import ConfigError
from .health.checks import default_checks
from .health.models import CheckContext, CheckResult, CheckSpec, ReadinessReport
from .health.runner import run_checks
from .logging_config import setup_logging
from .runtime import PhpRuntime, Runtime


@click.group()
@click.version_option(__version__, prog_name="readycheck")
def cli() -> None:
    """readycheck command-line interface."""
    pass


def _build_runtime(config: EnvironmentConfig) -> Runtime:
    """Construct the runtime the PHP-side checks query."""
    return PhpRuntime(config.php_binary)


def _select_checks(specs: List[CheckSpec], only: Tuple[str, ...]) -> List[CheckSpec]:
    if not only:
        return specs
    known = {spec.name for spec in specs}
    unknown = [name for name in only if name not in known]
    if unknown:
        raise click.UsageError(
            f"Unknown checks {unknown}; available: {', '.join(spec.name for spec in specs)}"
        )
    # Keep declaration order, not the order given on the command line.
    return [spec for spec in specs if spec.name in only]


def _format_result(result: CheckResult) -> str:
    if result.passed:
        return f"{result.name}: PASS"
    return f"{result.name}: FAIL - {result.message}"


def _report_json(report: ReadinessReport) -> str:
    return json.dumps(report.model_dump(), indent=2, sort_keys=True, default=str)


@cli.command(name="run")
@click.option(
    "--only",
    multiple=True,
    help="Run only the named check (repeatable).  Defaults to all checks.",
)
@click.option("--run-id", "run_id_opt", type=str, default=None, help="Identifier recorded in the report.")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="If set, also output the report in JSON format",
)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Optional path to write the JSON readiness report",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging on stderr.")
@click.option("--log-json", is_flag=True, default=False, help="Emit log records as JSON.")
def run(
    only: Tuple[str, ...],
    run_id_opt: Optional[str],
    json_output: bool,
    out: Optional[Path],
    verbose: bool,
    log_json: bool,
) -> None:
    """Run the readiness checks and report results.

    Connection parameters are read from DB_HOST, DB_PORT, DB_DATABASE,
    DB_USERNAME, DB_PASSWORD, REDIS_HOST, REDIS_PORT, APP_URL and
    PHP_BINARY, each falling back to a built-in default.  Exits with 0
    when every check passes and 1 otherwise.
    """
    setup_logging("DEBUG" if verbose else "WARNING", json_logs=log_json)
    try:
        config = EnvironmentConfig.from_env()
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    specs = _select_checks(default_checks(), only)
    context = CheckContext(config=config, runtime=_build_runtime(config))
    report = run_checks(specs, context, run_id=run_id_opt)

    for result in report.checks:
        click.echo(_format_result(result))
    failed = len(report.failures)
    click.echo(
        f"readiness: status={report.status} passed={len(report.checks) - failed} failed={failed}"
    )
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", encoding="utf-8") as f:
            f.write(_report_json(report))
    if json_output:
        click.echo(_report_json(report))

    ctx = click.get_current_context()
    ctx.exit(0 if report.status == "PASS" else 1)


@cli.command(name="list")
def list_checks() -> None:
    """List the available readiness checks."""
    for spec in default_checks():
        click.echo(f"{spec.name}: {spec.description}")


__all__ = ["cli"]
