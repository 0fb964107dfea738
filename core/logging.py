"""Loguru setup shared by every module (`from core.logging import log`)."""

import sys
from pathlib import Path
from typing import Optional
from loguru import logger
from core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Replace loguru's default sink with a console sink and a rotating file sink.

    Args:
        level: Minimum level for both sinks. Defaults to settings.LOG_LEVEL
        log_file: File sink path. Defaults to settings.LOG_FILE; an empty
                  string disables the file sink

    Returns:
        The configured loguru logger
    """
    level = level or settings.LOG_LEVEL
    log_file = settings.LOG_FILE if log_file is None else log_file

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            format=FILE_FORMAT,
            level=level,
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            compression="zip",
            enqueue=True,
        )

    return logger


log = setup_logging()
