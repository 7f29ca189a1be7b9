"""Logging setup for Treepatch."""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure logging for CLI runs.

    Records go to stderr through a Rich handler so they never mix with the
    summary printed on stdout.

    Args:
        verbose: Log at INFO instead of the default WARNING.
        debug: Log at DEBUG. Overrides verbose and TREEPATCH_LOG_LEVEL.

    Environment variables:
        TREEPATCH_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    default_level = "INFO" if verbose else "WARNING"
    env_level = os.getenv("TREEPATCH_LOG_LEVEL", default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.WARNING)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
    )
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
