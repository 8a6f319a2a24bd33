"""``endy run``: execute the suite with colored terminal output."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from endy._internal.config import RunConfig, load_config, parse_duration
from endy._internal.errors import (
    AssertionFailedError,
    BenchmarkFailedError,
    EndyError,
    MissingSecretError,
)
from endy._internal.logging import setup_logging
from endy.engine.models import RunMode
from endy.engine.runner import SuiteRunner
from endy.suite.loader import load_suite

if TYPE_CHECKING:
    from endy.engine.models import CaseResult, RunResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Configuration helpers
# ---------------------------------------------------------------------------


def _build_config(
    path: Path | None,
    timeout: str | None,
    bench: bool,
    bench_binary: str | None,
) -> RunConfig:
    """Merge CLI flags over the environment-derived defaults.

    Raises:
        typer.BadParameter: If ``--timeout`` is not a valid duration.
        ConfigError: If an ``ENDY_*`` environment variable is invalid.
    """
    config = load_config()
    overrides: dict[str, object] = {"bench_mode": bench}

    if path is not None:
        overrides["path"] = path
    if timeout is not None:
        try:
            overrides["timeout"] = parse_duration(timeout)
        except EndyError as exc:
            raise typer.BadParameter(str(exc), param_hint="--timeout") from exc
    if bench_binary is not None:
        overrides["bench_binary"] = bench_binary

    return dataclasses.replace(config, **overrides)


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


def _print_case(result: CaseResult) -> None:
    """Print a one-line verdict for a finished case."""
    label = escape(f"#{result.case.index} {result.case.name}")
    if result.passed:
        verdict = "benchmark passed" if result.return_code is not None else "Test passed"
        console.print(f"[green]{verdict}[/green] {label} ({result.latency_ms:.0f}ms)")
    elif result.return_code is not None:
        console.print(f"[red]benchmark failed[/red] {label} (exit code {result.return_code})")
    else:
        console.print(
            f"[red]Test failed[/red] {label} "
            f"(expected {result.case.expected_status}, got {result.status_code})"
        )


def _print_failure_details(run: RunResult) -> None:
    """Print the request/response context of the case that aborted the run."""
    error = run.error
    if isinstance(error, AssertionFailedError):
        failed = error.result
        table = Table(title="Failed Request", show_header=False, expand=True)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("URL", escape(failed.case.url))
        table.add_row("Method", failed.case.method)
        table.add_row("Body", escape(failed.sent_body) or "-")
        table.add_row("Expected Status", str(failed.case.expected_status))
        table.add_row("Status", str(failed.status_code))
        table.add_row("Response Body", escape(failed.response_body) or "-")
        console.print(table)
    elif isinstance(error, BenchmarkFailedError):
        console.print(Panel(escape(error.result.output) or "(no output)", title="Benchmark Output"))


def _print_summary(run: RunResult) -> None:
    """Print a final summary table after the run ends.

    Args:
        run: Finished run result.
    """
    style = "bold green" if run.completed else "bold red"
    table = Table(
        title="Run Complete" if run.completed else "Run Aborted",
        show_header=True,
        header_style=style,
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Mode", run.mode.name.lower())
    table.add_row("Outcome", run.outcome.name)
    table.add_row("Cases", str(run.total_cases))
    table.add_row("Executed", str(len(run.results)))
    table.add_row("Passed", str(run.passed_count))
    table.add_row("Duration", f"{run.duration_seconds:.2f}s")
    if run.aborted_at is not None:
        table.add_row("Aborted At", f"#{run.aborted_at}")

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    path: Path | None = typer.Option(
        None,
        "--path",
        "-p",
        help="Path to the YAML suite file (default: config.yaml).",
        dir_okay=False,
    ),
    timeout: str | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Deadline for the whole suite, e.g. 10s, 1m30s (default: 10s).",
    ),
    bench: bool = typer.Option(
        False,
        "--bench",
        "-b",
        help="Execute tests in benchmark mode through the load generator.",
    ),
    bench_binary: str | None = typer.Option(
        None,
        "--bench-binary",
        help="Load generator executable (default: bombardier).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON log lines.",
    ),
) -> None:
    """Run the suite and exit non-zero on the first failure."""
    setup_logging(logging.DEBUG if verbose else logging.INFO, json_format=json_logs)

    try:
        config = _build_config(path, timeout, bench, bench_binary)
        suite = load_suite(config.path)
    except MissingSecretError as exc:
        console.print(f"[red]Missing secret:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except EndyError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    test_runner = SuiteRunner(suite, config, on_result=_print_case)

    console.print(
        Panel(
            f"[bold]Suite:[/bold]   {escape(str(config.path))}\n"
            f"[bold]Cases:[/bold]   {len(suite)}\n"
            f"[bold]Timeout:[/bold] {config.effective_timeout:g}s",
            title="Endy",
            border_style="cyan",
        )
    )
    if test_runner.mode is RunMode.BENCHMARK:
        console.print("[yellow]Running benchmark mode[/yellow]")
    else:
        console.print("[green]Running API testing mode[/green]")

    result = test_runner.run()

    _print_summary(result)

    if not result.completed:
        _print_failure_details(result)
        console.print(f"[red]FAIL:[/red] {escape(str(result.error))}")
        raise typer.Exit(code=1)

    console.print("[green]All tests passed.[/green]")
