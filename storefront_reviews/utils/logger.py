import logging
import sys
from typing import Optional

from ..config import LOG_LEVEL, LOG_FORMAT


def setup_logger(name: str = "reviews", log_level: Optional[str] = None) -> logging.Logger:
    """
    Configure a console logger.

    Handlers are cleared first so repeated setup (app reloads, tests) does not
    duplicate output.
    """
    level = getattr(logging, (log_level or LOG_LEVEL).upper())
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(name: str = "reviews") -> logging.Logger:
    """Return a child of the package logger, setting the package logger up on first use."""
    root = logging.getLogger("reviews")
    if not root.handlers:
        setup_logger("reviews")
    if name == "reviews":
        return root
    return logging.getLogger(f"reviews.{name}")
