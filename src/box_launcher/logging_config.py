"""Logging setup for the launcher."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "box_launcher"


def configure_logging(debug: bool = False, console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the launcher logger.

    Debug mode logs everything; otherwise only warnings and errors reach the
    terminal. Calling this again replaces the previously installed handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_box_launcher", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
        markup=False,
    )
    handler._box_launcher = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    return logger
