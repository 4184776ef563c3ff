"""Init command: write a default solsift.toml."""

from pathlib import Path

import typer

from ..config import init_config_file
from ..exceptions import SolsiftError
from . import app
from ._common import console


@app.command()
def init(
    directory: Path = typer.Argument(
        Path("."),
        help="Directory to write solsift.toml into",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing solsift.toml",
    ),
):
    """Create a solsift.toml with every option at its default."""
    try:
        target = init_config_file(directory, overwrite=force)
    except SolsiftError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Wrote[/green] {target}")
