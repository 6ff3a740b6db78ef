"""Logging setup shared by the app, services and scripts."""

import logging
import sys
from typing import Optional

BASE_LOGGER = "learnmatch"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger once.

    Args:
        level: log level name (DEBUG, INFO, WARNING, ERROR)
    """
    logger = logging.getLogger(BASE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{BASE_LOGGER}.{name}")
    return logging.getLogger(BASE_LOGGER)
