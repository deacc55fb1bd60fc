"""Logging configuration helpers for the exam application."""

from __future__ import annotations

import logging
from logging import Logger
import os


def configure_logging() -> Logger:
    """Configure basic logging for the application and return the package logger.

    ``EXAMQT_LOG_LEVEL`` (e.g. ``DEBUG``) overrides the default INFO level.
    """
    level_name = os.getenv("EXAMQT_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("exam_app")
