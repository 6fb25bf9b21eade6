"""
Loguru setup for the shortlinks service.

The services and repositories log through ``logging.getLogger(__name__)``;
everything is funnelled into loguru here so that allocation retries,
dropped click events and geo lookups end up in the same sinks as the
uvicorn access log.
"""

import logging
import os
import sys

from loguru import logger

from shortlinks.core.config import settings

# Loggers that install their own handlers and need re-pointing
THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi")


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru, keeping the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _add_console_sink(level: str) -> None:
    logger.add(
        sys.stderr,
        level=level,
        format=settings.LOG_FORMAT,
        backtrace=True,
        diagnose=True,
    )


def _add_file_sink(level: str) -> None:
    """
    Rotating file sink under ``LOG_DIR``.

    ``LOG_JSON`` switches between loguru's serialized records and the
    plain ``LOG_FORMAT`` line. Records are written from loguru's queue.
    """
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    options = dict(
        level=level,
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        compression="gz",
        enqueue=True,
    )
    if settings.LOG_JSON:
        options["serialize"] = True
    else:
        options["format"] = settings.LOG_FORMAT

    logger.add(os.path.join(settings.LOG_DIR, settings.LOG_FILENAME), **options)


def _intercept_stdlib() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in list(logging.root.manager.loggerDict):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]

    # SQL statements only when the engine itself is asked to echo
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_logging():
    """
    Configure the service's sinks and return the bound loguru logger.

    A stderr sink is added when ``DEBUG`` is on and a rotating file sink
    when ``LOG_TO_FILE`` is on. Every record carries the deployment
    ``environment`` in its extras.
    """
    level = settings.LOG_LEVEL.upper()

    logger.remove()
    logger.configure(extra={"environment": settings.ENVIRONMENT.value})

    if settings.DEBUG:
        _add_console_sink(level)
    if settings.LOG_TO_FILE:
        _add_file_sink(level)

    _intercept_stdlib()
    return logger
