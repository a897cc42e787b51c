"""Logging setup for the cc-archive CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"


def setup_logging(level: str = "WARNING", console: Console | None = None) -> None:
    """Route all log records through a Rich console handler.

    Args:
        level: Level name such as "DEBUG" or "WARNING".
        console: Console to write to; defaults to stderr so JSON output stays clean.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)
