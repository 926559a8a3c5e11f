"""
Logging setup.

Configures loguru sinks for the scheduler, workers and admin scripts.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(log_file: str | None = None) -> None:
    """
    Configure logger with stderr output and optional file rotation.

    Args:
        log_file: Log file path (defaults to settings.log_file)
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    path = log_file or settings.log_file
    if path:
        logger.add(
            path,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )
