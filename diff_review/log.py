"""Logging setup with rich console output.

Library modules only call :func:`get_logger`; the CLI entry point calls
:func:`setup_logging` once to attach the console handler.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "DIFF_REVIEW_LOG_LEVEL"
PACKAGE_LOGGER = "diff_review"

console = Console(stderr=True)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the package namespace."""
    return logging.getLogger(name)


def setup_logging(level: str = "WARNING") -> None:
    """Attach a single rich handler to the package logger.

    The ``DIFF_REVIEW_LOG_LEVEL`` environment variable overrides ``level``.
    Calling this again replaces the previous handler.
    """
    resolved = os.getenv(LOG_LEVEL_ENV, level).upper()
    if resolved not in logging.getLevelNamesMapping():
        resolved = "WARNING"

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolved)
    logger.handlers.clear()

    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = True
