"""Analyze command: run the detectors and render the report."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ..api import analyze as run
from ..config import load_config
from ..exceptions import SolsiftError
from ..logging_config import setup_logging
from ..models import Report
from . import app
from ._common import SeverityChoice, console, styled_severity


@app.command()
def analyze(
    scope: Optional[list[Path]] = typer.Argument(
        None,
        help="Files or directories to analyze (default: the project's source directory)",
    ),
    root: Optional[Path] = typer.Option(
        None,
        "-C",
        "--root",
        help="Project root (default: detected from foundry.toml, hardhat.config.* or truffle-config.js)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    exclude: Optional[list[str]] = typer.Option(
        None,
        "--exclude",
        "-e",
        help="Path or glob to exclude (repeatable)",
    ),
    min_severity: Optional[SeverityChoice] = typer.Option(
        None,
        "--min-severity",
        "-s",
        help="Lowest severity to report",
        case_sensitive=False,
    ),
    exclude_detector: Optional[list[str]] = typer.Option(
        None,
        "--exclude-detector",
        "-x",
        help="Detector id to skip (repeatable)",
    ),
    remapping: Optional[list[str]] = typer.Option(
        None,
        "--remapping",
        "-r",
        help="Import remapping prefix=target (repeatable, overrides project remappings)",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "-w",
        "--workers",
        help="Parallel workers (default: auto-detect)",
        min=1,
        max=32,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
    fail_on: Optional[SeverityChoice] = typer.Option(
        None,
        "--fail-on",
        help="Exit 1 if any finding is at or above this severity",
        case_sensitive=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Append log records to this file",
        dir_okay=False,
    ),
):
    """
    Run the detectors over a Solidity project.

    [bold cyan]Examples:[/bold cyan]

      solsift analyze

      solsift analyze src/Vault.sol --min-severity medium

      solsift analyze -C ./my-protocol -x floating-pragma --json
    """
    try:
        logger = setup_logging(verbose=verbose, quiet=quiet or json_output, log_file=log_file)
    except SolsiftError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        settings = load_config(
            config_file=config,
            root=root,
            scope=[str(p.resolve()) for p in scope] if scope else None,
            exclude=exclude or None,
            min_severity=min_severity.value if min_severity else None,
            exclude_detectors=exclude_detector or None,
            remappings=remapping or None,
            workers=workers,
        )
        report = run(settings)
    except SolsiftError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    if json_output:
        typer.echo(report.to_json())
    else:
        _output_rich(report, verbose=verbose)

    if fail_on is not None:
        threshold = fail_on.severity
        if any(f.severity.at_least(threshold) for f in report.findings):
            raise typer.Exit(1)


def _output_rich(report: Report, verbose: bool = False) -> None:
    console.print()
    console.print(
        f"[bold cyan]SOLSIFT[/bold cyan] · {report.files_analyzed} files, "
        f"{report.detectors_run} detectors"
    )
    console.print()

    if report.findings:
        table = Table(title="Findings", show_lines=False)
        table.add_column("Severity", no_wrap=True)
        table.add_column("Detector", style="bold")
        table.add_column("Location", no_wrap=True)
        table.add_column("Message")
        for finding in report.findings:
            table.add_row(
                styled_severity(finding.severity),
                finding.detector_id,
                f"{finding.file}:{finding.span.start.line}",
                escape(finding.message),
            )
            if verbose and finding.snippet:
                table.add_row("", "", "", f"[dim]{escape(finding.snippet)}[/dim]")
        console.print(table)
    else:
        console.print("[bold green]No findings.[/bold green]")

    if report.diagnostics:
        console.print()
        table = Table(title="Diagnostics", title_style="yellow")
        table.add_column("Code", no_wrap=True)
        table.add_column("Kind")
        table.add_column("Location", no_wrap=True)
        table.add_column("Message")
        for diagnostic in report.diagnostics:
            location = diagnostic.file or ""
            if diagnostic.line is not None:
                location = f"{location}:{diagnostic.line}"
            table.add_row(
                diagnostic.kind.code,
                diagnostic.kind.label,
                location,
                escape(diagnostic.message),
            )
        console.print(table)

    console.print()
    counts = ", ".join(f"{n} {sev}" for sev, n in report.severity_counts().items() if n)
    total = len(report.findings)
    console.print(f"{total} finding{'s' if total != 1 else ''}" + (f" ({counts})" if counts else "") + ".")
