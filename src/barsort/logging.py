"""Logging setup for Barcode Sorter.

Modules get their logger with ``get_logger(__name__)``; the CLI calls
``configure_logging`` once at startup.
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    console: Optional[Console] = None,
) -> None:
    """Configure the root logger with a rich console handler.

    Calling it again only updates the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        handler = RichHandler(
            console=console,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(handler)

    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
