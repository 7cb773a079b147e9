# utils/logging.py

"""Logging setup for the activity generation pipeline."""

from __future__ import annotations

import logging
import logging.handlers
import os

import structlog
from config import settings
from rich.logging import RichHandler

logger = structlog.get_logger(__name__)

__all__ = ["setup_logging"]

NOISY_LOGGERS = ("httpx", "httpcore")


def _file_handler(file_name: str) -> logging.Handler:
    file_path = (
        file_name if os.path.isabs(file_name) else os.path.join(settings.LOG_DIR, file_name)
    )
    log_dir = os.path.dirname(file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        file_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        mode="a",
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(settings.LOG_FORMAT, datefmt=settings.LOG_DATE_FORMAT)
    )
    return handler


def setup_logging() -> None:
    """Configure structlog and standard logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(settings.LOG_LEVEL_STR)

    if settings.LOG_FILE:
        try:
            root_logger.addHandler(_file_handler(settings.LOG_FILE))
        except OSError as e:
            logger.error("Error setting up file logger.", error=str(e))

    if settings.ENABLE_RICH_LOGGING:
        console_handler: logging.Handler = RichHandler(
            level=settings.LOG_LEVEL_STR,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
            show_time=True,
            show_level=True,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter(settings.LOG_FORMAT, datefmt=settings.LOG_DATE_FORMAT)
        )
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger().info(
        "Logging setup complete.",
        log_level=logging.getLevelName(root_logger.level),
    )
