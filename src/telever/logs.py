"""Logging setup: Rich console output plus a daily log file."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_NAME = "telever.log"
FILE_FORMAT = "%(asctime)s: %(levelname)s -- %(name)s -- %(message)s"


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure the ``telever`` logger.

    Console records go through a RichHandler (stderr). When ``log_dir`` is
    given, records are also appended to a file that rolls over at midnight.
    Calling this twice replaces the handlers instead of stacking them.

    Args:
        level: Logging level name
        log_dir: Directory for the daily log file; None disables file logging
        console: Optional Rich console for the console handler

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("telever")
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logger.addHandler(rich_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            when="midnight",
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
