"""
logging_config.py

Centralized logging configuration for s2irun.
"""

import logging
from typing import Optional
from pathlib import Path

from rich.logging import RichHandler

from ..abstract_class import PACKAGE_LOGGER_NAME


def _numeric_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')
    return numeric_level


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the s2irun package logger and return it.

    The returned logger is the handle the orchestrator passes to its
    collaborators. Only the package logger is touched, never the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        format_string: Custom format string for file log messages

    Returns:
        The configured package logger

    Example:
        >>> logger = configure_logging(level="DEBUG")
        >>> logger.info("Starting build")
    """
    numeric_level = _numeric_level(level)

    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        level=numeric_level,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(format_string))
        package_logger.addHandler(file_handler)

    package_logger.debug(f"Logging configured: level={level}, log_file={log_file}")
    return package_logger


def set_log_level(level: str, logger_name: Optional[str] = None) -> None:
    """
    Change the log level for a specific logger or the package logger.

    Args:
        level: New logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Optional specific logger name, or None for the package logger
    """
    logging.getLogger(logger_name or PACKAGE_LOGGER_NAME).setLevel(_numeric_level(level))
