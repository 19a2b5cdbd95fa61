"""Entry point for the contract-check application."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

if __package__ in {None, ""}:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "contract_checker"

from .config import PolicyError, get_log_level, load_policy
from .console_reporter import ConsoleReporter
from .diff import diff
from .exceptions import ContractCheckError
from .extractors import extract_shape
from .logging_utils import configure_logging
from .models import CurrentShape
from .output_config import get_output_format, log_format_for
from .reporting import build_report, write_json_report, write_junit
from .store import load_baseline, save_baseline

app = typer.Typer(help="Detect breaking API changes by diffing a recorded contract against the live shape.")

TARGET_HELP = "Service description: package.module:ClassName, a .java source, or a .yaml/.yml/.json description."


def _extend_sys_path(paths: list[Path]) -> None:
    for candidate in [Path.cwd(), *paths]:
        candidate_str = str(candidate.resolve())
        if candidate_str not in sys.path:
            sys.path.insert(0, candidate_str)


def _extract(target: str, search_path: list[Path]) -> CurrentShape:
    _extend_sys_path(search_path)
    try:
        return extract_shape(target)
    except ContractCheckError as exc:
        raise typer.BadParameter(str(exc), param_hint="--target") from exc


@app.command()
def check(
    baseline: Path = typer.Option(..., exists=True, readable=True, help="Recorded baseline contract (.yaml/.json)."),
    target: str = typer.Option(..., help=TARGET_HELP),
    policy: Optional[Path] = typer.Option(None, help="Optional policy YAML/JSON (ignore, fail_on_added)."),
    report: Optional[Path] = typer.Option(None, help="Write the machine-readable JSON report to this path."),
    junit: Optional[Path] = typer.Option(None, help="Write a JUnit XML report to this path."),
    show_all: bool = typer.Option(False, "--show-all", help="Also list unchanged and added operations."),
    search_path: list[Path] = typer.Option(
        [],
        "--search-path",
        "-I",
        help="Extra directories importable by module:Class targets.",
    ),
    output_format: Optional[str] = typer.Option(
        None,
        "--output-format",
        help="auto (default), rich, plain or json. Falls back to CONSOLE_OUTPUT_FORMAT.",
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level; falls back to CONTRACT_CHECK_LOG_LEVEL."),
) -> None:
    """Exit 0 when the target still honours the baseline, 1 on breaking changes."""

    fmt = get_output_format(output_format)
    logger = configure_logging(get_log_level(log_level), log_format_for(fmt))

    try:
        check_policy = load_policy(policy)
    except PolicyError as exc:
        raise typer.BadParameter(str(exc), param_hint="--policy") from exc

    try:
        contract = load_baseline(baseline)
    except ContractCheckError as exc:
        raise typer.BadParameter(str(exc), param_hint="--baseline") from exc
    current = _extract(target, search_path)

    results = diff(contract, current)
    diff_report = build_report(
        results,
        baseline=contract,
        current=current,
        baseline_source=str(baseline),
        target=target,
        policy=check_policy,
    )

    reporter = ConsoleReporter(output_format=fmt)
    reporter.print_report(diff_report, show_all=show_all)
    if report is not None:
        write_json_report(diff_report, report)
        reporter.print_info(f"JSON report written -> {report}")
    if junit is not None:
        write_junit(diff_report, junit)
        reporter.print_info(f"JUnit report written -> {junit}")

    failures = diff_report.gate_failures()
    logger.info("check_finished", passed=not failures, failures=len(failures))
    if failures:
        raise typer.Exit(code=1)


@app.command()
def snapshot(
    target: str = typer.Option(..., help=TARGET_HELP),
    output: Path = typer.Option(..., help="Destination baseline file (.yaml/.yml/.json)."),
    service: Optional[str] = typer.Option(None, help="Override the service name stored in the baseline."),
    version: Optional[str] = typer.Option(None, help="Override the version stored in the baseline."),
    search_path: list[Path] = typer.Option([], "--search-path", "-I", help="Extra importable directories."),
    log_level: Optional[str] = typer.Option(None, help="Log level; falls back to CONTRACT_CHECK_LOG_LEVEL."),
) -> None:
    """Record the current shape of a target as a baseline contract."""

    configure_logging(get_log_level(log_level), log_format_for(get_output_format()))
    current = _extract(target, search_path)
    try:
        destination = save_baseline(current.to_baseline(service=service, version=version), output)
    except ContractCheckError as exc:
        raise typer.BadParameter(str(exc), param_hint="--output") from exc
    typer.secho(f"Baseline recorded -> {destination} ({len(current)} operations)", fg=typer.colors.GREEN)


@app.command()
def show(
    target: str = typer.Option(..., help=TARGET_HELP),
    search_path: list[Path] = typer.Option([], "--search-path", "-I", help="Extra importable directories."),
) -> None:
    """Print the signatures currently exposed by a target."""

    current = _extract(target, search_path)
    header = current.service or target
    if current.version:
        header = f"{header} {current.version}"
    typer.secho(header, fg=typer.colors.CYAN)
    for signature in current.signatures:
        typer.echo(f"  {signature}")


def run() -> None:
    """CLI entry point for console_scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
