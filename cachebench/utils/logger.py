"""
Logging setup for cachebench.

One package logger ("cachebench") writes to stdout; modules get children of
it through get_logger. The level comes from LOG_LEVEL at import time and is
re-applied from config.log_level when services are built.
"""
import logging
import os
import sys
from typing import Optional

PACKAGE_LOGGER = "cachebench"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")

logger = logging.getLogger(PACKAGE_LOGGER)


def configure_logging(level: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Attach the stdout handler once and apply ``level``.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable
        stream: Output stream (default sys.stdout)

    Returns:
        The package logger
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        # Avoid duplicate lines through the root logger
        logger.propagate = False
    set_level(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger


def set_level(level: str) -> None:
    """Change the level of the package logger and its handlers."""
    level = level.upper()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def get_logger(name: str = None) -> logging.Logger:
    """Child logger ``cachebench.<name>``, or the package logger when name is empty."""
    if name:
        return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
    return logger


configure_logging()
