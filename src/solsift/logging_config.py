"""
Logging configuration for solsift.

Everything logs under the ``solsift`` namespace. ``setup_logging`` attaches
its handlers to that logger only, so embedding solsift as a library never
touches the host application's root logger. Terminal output goes to stderr
through a rich handler and never mixes with report output on stdout.

The level comes from the command-line flags, or from ``SOLSIFT_LOG_LEVEL``
when neither ``--verbose`` nor ``--quiet`` is given.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .exceptions import InvalidConfigError

ROOT_LOGGER = "solsift"
LEVEL_ENV = "SOLSIFT_LOG_LEVEL"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Detection runs on pool threads, so file logs name the worker.
FILE_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(verbose: bool = False, quiet: bool = False) -> int:
    """Pick the log level: ``quiet`` beats ``verbose``, both beat the environment."""
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG

    configured = os.environ.get(LEVEL_ENV)
    if not configured:
        return logging.WARNING
    try:
        return LEVELS[configured.strip().lower()]
    except KeyError:
        raise InvalidConfigError(LEVEL_ENV, configured, f"expected one of {', '.join(LEVELS)}")


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the ``solsift`` logger for one command-line run.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging
        log_file: Optional file path; records are appended with thread names

    Returns:
        The configured ``solsift`` logger

    Raises:
        InvalidConfigError: If SOLSIFT_LOG_LEVEL names an unknown level
    """
    level = resolve_level(verbose=verbose, quiet=quiet)
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,
            show_time=verbose,
            show_path=verbose,
        )
    )

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the ``solsift`` namespace.

    Args:
        name: Module name, usually ``__name__``. Names outside the package
              are nested under it. If None, returns the ``solsift`` logger.
    """
    if name is None or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
