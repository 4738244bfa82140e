"""Logging configuration for sanbao_stream.

The package only logs through ``logging.getLogger(__name__)`` and never
configures logging on import. Applications that own their logging setup
tune the ``sanbao_stream`` logger themselves; scripts and tools can call
``configure_logging()`` to get console output without touching the root
logger.
"""

import logging
import sys
from typing import Literal

from sanbao_stream.settings import get_settings

LOGGER_NAME = "sanbao_stream"

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"

# Transport libraries that log every request and connection event
NOISY_LOGGER_LEVELS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def suppress_noisy_loggers() -> None:
    """Raise the level of chatty transport loggers."""
    for logger_name, level in NOISY_LOGGER_LEVELS.items():
        logging.getLogger(logger_name).setLevel(level)


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
) -> logging.Logger:
    """Attach a stderr handler to the ``sanbao_stream`` logger.

    Calling it again only updates the level; the handler is installed
    once. The root logger and its handlers are left alone.

    Args:
        level: Override log level (defaults to settings.log_level)

    Returns:
        The package logger.
    """
    log_level = getattr(logging, level or get_settings().log_level)

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(log_level)

    handler = next((h for h in package_logger.handlers if getattr(h, "_sanbao_console", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._sanbao_console = True
        package_logger.addHandler(handler)
    handler.setLevel(log_level)

    suppress_noisy_loggers()
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given name (typically ``__name__``)."""
    return logging.getLogger(name)
