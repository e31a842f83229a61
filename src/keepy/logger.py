"""
Logging setup for Keepy.

All module loggers live under the "keepy" namespace and share the handlers
attached to the package logger.
"""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "keepy"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Get a logger whose records go through the Keepy handlers.

    Args:
        name: Logger name, usually __name__
        level: Level name applied to the package logger
        log_file: Optional path of a file to log to as well

    Returns:
        Logger for the given name
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    formatter = logging.Formatter(fmt=LOG_FORMAT)

    if not package_logger.handlers:
        # stderr keeps stdout free for command output
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        package_logger.addHandler(stream_handler)
        package_logger.setLevel(_level_from_name(os.environ.get('KEEPY_LOG_LEVEL', 'WARNING')))

    if level is not None:
        package_logger.setLevel(_level_from_name(level))

    if log_file and not _has_file_handler(package_logger, log_file):
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return logging.getLogger(name)


def _has_file_handler(logger: logging.Logger, log_file: str) -> bool:
    path = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == path
        for h in logger.handlers
    )


def _level_from_name(level: str) -> int:
    """Map a level name to its numeric value, defaulting to INFO."""
    return getattr(logging, str(level).upper(), logging.INFO)
