"""Detectors command: list the built-in detector battery."""

from typing import Optional

import typer
from rich.table import Table

from ..detectors import default_registry
from . import app
from ._common import SeverityChoice, console, styled_severity


@app.command()
def detectors(
    severity: Optional[SeverityChoice] = typer.Option(
        None,
        "--severity",
        "-s",
        help="Only list detectors of this severity",
        case_sensitive=False,
    ),
):
    """
    List available detectors.

    [bold cyan]Examples:[/bold cyan]

      solsift detectors

      solsift detectors --severity high
    """
    wanted = severity.severity if severity else None
    table = Table(title="Detectors")
    table.add_column("Id", style="bold", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Title")
    table.add_column("Requires")

    shown = 0
    for info in default_registry().describe():
        if wanted is not None and info.severity is not wanted:
            continue
        table.add_row(info.id, styled_severity(info.severity), info.title, info.feature or "")
        shown += 1

    console.print(table)
    console.print(f"{shown} detectors")
