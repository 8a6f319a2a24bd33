"""``endy init``: scaffold a starter suite file from a template."""

from __future__ import annotations

from pathlib import Path
from string import Template

import typer
from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)

_SUITE_TEMPLATE = Template("""\
# Endy test suite. Cases run in order; the first failure stops the run.
#
# Run with:
#     endy run --path $filename --timeout 10s
#     endy run --path $filename --bench      # benchmark through bombardier

- url: $base_url/health
  method: GET
  assert_code: 200

- url: $base_url/items
  method: POST
  assert_code: 201
  body: new item
  headers:
    - name: Content-Type
      value: application/json
    - name: Authorization
      env_secret: API_TOKEN
  # Benchmark-mode settings, forwarded to bombardier
  threads: 10
  requests: 1000
""")


def init_cmd(
    filename: str = typer.Argument(
        "config.yaml",
        help="Suite file to create.",
    ),
    base_url: str = typer.Option(
        "http://localhost:8080",
        "--base-url",
        help="Base URL used in the example cases.",
    ),
) -> None:
    """Scaffold a starter suite file in the current directory."""
    target = Path.cwd() / filename
    if target.exists():
        console.print(f"[red]File already exists:[/red] {escape(filename)}")
        raise typer.Exit(code=1)

    content = _SUITE_TEMPLATE.substitute(
        filename=filename,
        base_url=base_url.rstrip("/"),
    )
    target.write_text(content)
    console.print(f"[green]Created suite:[/green] {escape(filename)}")
