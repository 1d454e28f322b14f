from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from blessing_bot.core.config import Settings, get_settings

LOG_FILE_NAME = "blessing_bot.log"
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(settings: Settings | None = None) -> Path:
    """Send bot logs to stdout and to a rotating file under ``settings.log_dir``.

    Returns the path of the log file.
    """
    settings = settings or get_settings()
    logger.remove()

    # stdout for docker-compose logs
    logger.add(sys.stdout, level=settings.log_level, format=CONSOLE_FORMAT, enqueue=True)

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    logger.add(
        log_file,
        level=settings.log_level,
        format=FILE_FORMAT,
        encoding="utf-8",
        rotation="10 MB",
        retention="7 days",
        enqueue=True,
    )
    logger.info("Logging to {} at level {} ({} mode)", log_file, settings.log_level, settings.app_env)
    return log_file
