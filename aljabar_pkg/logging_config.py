"""Structured logging configuration for Aljabar.

Every module logs under the ``aljabar`` namespace. The library installs no
output handlers of its own unless ``ALJABAR_LOG_LEVEL`` is set or the caller
invokes ``setup_logging``.
"""

import logging
import sys
from datetime import datetime
from typing import Optional

from .config import LOG_FILE, LOG_LEVEL

ROOT_LOGGER = "aljabar"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured log entries with timestamp, module, level, and message."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        message = f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(
    level: str = "INFO", log_file: Optional[str] = None
) -> logging.Logger:
    """Route ``aljabar.*`` records to stderr and optionally a file.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path that receives the same records

    Returns:
        The ``aljabar`` namespace logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def configure_from_env(level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE):
    """Apply ``ALJABAR_LOG_LEVEL`` / ``ALJABAR_LOG_FILE``; a no-op when no level is set."""
    if not level:
        return None
    return setup_logging(level, log_file)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger for one module, e.g. ``get_logger("groebner")`` -> ``aljabar.groebner``."""
    if name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
