"""Main Typer application: entry point for the ``endy`` CLI."""

from __future__ import annotations

import typer

from endy import __version__
from endy.cli.init_cmd import init_cmd
from endy.cli.run import run_cmd

app = typer.Typer(
    name="endy",
    help="Run declarative end-to-end HTTP tests from a YAML file.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run the test suite in assertion or benchmark mode.")(run_cmd)
app.command("init", help="Scaffold a starter suite file.")(init_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"endy {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Endy: declarative end-to-end HTTP tests."""
