import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import structlog

from peermatch.core.config import get_settings


MAX_BYTES = 50 * 1024 * 1024  # 50 MB
BACKUP_COUNT = 14

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(processName)s | %(name)s | %(message)s"
ERROR_FORMAT = (
    "%(asctime)s | %(levelname)s | %(processName)s | %(name)s | %(pathname)s:%(lineno)d | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_handlers(log_dir: Optional[str] = None, level: Optional[str] = None) -> List[logging.Handler]:
    """
    Create the console and optional rotating file handlers.

    ``log_dir`` and ``level`` default to the ``LOG_DIR`` and ``LOG_LEVEL`` settings.
    """
    settings = get_settings()
    log_dir = log_dir if log_dir is not None else settings.LOG_DIR
    level = (level or settings.LOG_LEVEL).upper()

    plain_formatter = logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT)
    error_formatter = logging.Formatter(ERROR_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(plain_formatter)
    handlers.append(console_handler)

    # File logs only when a directory is configured
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            directory / "matching.log",
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(plain_formatter)
        handlers.append(file_handler)

        error_file_handler = RotatingFileHandler(
            directory / "error.log",
            maxBytes=MAX_BYTES // 2,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(error_formatter)
        handlers.append(error_file_handler)

    return handlers


def configure_logging(log_dir: Optional[str] = None, level: Optional[str] = None):
    """Configure stdlib handlers and structlog for the matching service."""
    level = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(level=level, handlers=build_handlers(log_dir, level))

    for noisy in ("asyncio", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("peermatch")


logger = configure_logging()
