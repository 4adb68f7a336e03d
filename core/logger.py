import logging
import os
import sys
from typing import List, Any

import structlog
from concurrent_log_handler import ConcurrentTimedRotatingFileHandler
from structlog.contextvars import merge_contextvars
from structlog.stdlib import ProcessorFormatter

from core.config import get_settings, InitializationError

_LOGGING_INITIALIZED = False


def initialize_logging() -> structlog.stdlib.BoundLogger:
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED:
        return structlog.get_logger()

    try:
        settings = get_settings()
    except InitializationError:
        logging.basicConfig(level=logging.INFO)
        return structlog.get_logger("liveops")

    level = settings.LOG__LEVEL.upper()

    shared_processors: List[Any] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
    ]

    # structlog writes through stdlib logging so uvicorn/sqlalchemy records share handlers
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console_handler)

    if settings.LOG__TO_FILE:
        os.makedirs(settings.LOG__DIR, exist_ok=True)
        log_file = os.path.join(settings.LOG__DIR, f"{settings.APP_NAME}.log")
        # multi-process safe when uvicorn runs several workers
        file_handler = ConcurrentTimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            interval=1,
            backupCount=settings.LOG__FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=False),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)

    _LOGGING_INITIALIZED = True
    return structlog.get_logger(settings.APP_NAME)


def get_logger(name: str = None):
    try:
        settings = get_settings()
    except InitializationError:
        return structlog.get_logger(name or "liveops")

    if not _LOGGING_INITIALIZED:
        initialize_logging()

    return structlog.get_logger(name or settings.APP_NAME)
