"""CLI entry point: registers all subcommands."""

import typer

app = typer.Typer(
    name="solsift",
    help="solsift - static analysis for Solidity projects",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .detectors import detectors as _detectors  # noqa: F401, E402
from .init import init as _init  # noqa: F401, E402
