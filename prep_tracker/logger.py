"""Logging setup for the progress tracker service.

A single ``prep_tracker`` logger tree is configured at startup; modules ask for
child loggers through :func:`get_logger`.
"""
import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "prep_tracker"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the ``prep_tracker`` logger.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")

    Returns:
        The configured root logger of the package
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers when called twice (reload, tests)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a module logger under the package namespace.

    Args:
        name: Short module name, e.g. "progress" or "csv_import"

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)
