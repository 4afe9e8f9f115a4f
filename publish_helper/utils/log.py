"""Logging setup for the command-line interface."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "publish_helper"


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Route the package loggers through a rich handler.

    Args:
        verbose: Emit DEBUG records (including every executed command)
        console: Console to render to (stderr console by default)

    Returns:
        The package root logger
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger
