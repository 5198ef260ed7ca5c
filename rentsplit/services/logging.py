"""Logging configuration for applications embedding the engine.

Provides dual output (stdout + file) on the "rentsplit" logger with the level
taken from the LOG_LEVEL env var, falling back to RENTSPLIT_LOG_LEVEL.
Default: INFO. Set LOG_LEVEL=DEBUG to see every computed breakdown.
"""

import logging
import os
import sys
from pathlib import Path

from rentsplit.config import get_settings

PACKAGE_LOGGER = "rentsplit"

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """Get logging level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (default: the configured log_level, else INFO)
    """
    level_str = os.getenv("LOG_LEVEL") or get_settings().log_level
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


def setup_logging(log_file: str | None = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_file: Path to log file (default: settings.log_file)

    Returns:
        The configured "rentsplit" logger

    Behavior:
        - Engine loggers write to both stdout and file
        - ISO format timestamps
        - Calling twice replaces the handlers instead of duplicating them
    """
    log_path = Path(log_file or get_settings().log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # ISO format: [YYYY-MM-DD HH:MM:SS]
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_level = get_log_level()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(formatter)
    package_logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)

    return package_logger
