"""
Logging setup for training runs.

Console output goes through rich; an optional plain-text log file gets the
same records with timestamps.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "asteroids_ai"


def setup_logging(
    config=None,
    level: Optional[str] = None,
    console: Optional[Console] = None,
    quiet: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        config: LoggingConfig (level, log_file); defaults when None
        level: Explicit level, overrides config.level
        console: rich Console to log to (shared with a live display)
        quiet: Only warnings and errors on the console

    Returns:
        The package logger
    """
    resolved = (level or getattr(config, "level", None) or "INFO").upper()
    log_file = getattr(config, "log_file", None)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(resolved)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.WARNING if quiet else resolved)
    package_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATEFMT))
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    package_logger.debug("Logging configured at %s", resolved)
    return package_logger
