"""
Logging configuration

Modules log through the standard library (logging.getLogger(__name__)) and
setup_logging() routes every record into loguru. Drift log lines carry the
session they belong to: pass extra={"session_id": ...} on the stdlib call and
it lands in loguru's extra, where the sink formats can show it.
"""
import logging
import sys
from pathlib import Path

from loguru import logger
from driftwatch.core.config import settings

# Stdlib record attributes forwarded into loguru's extra
CONTEXT_FIELDS = ("session_id",)
NO_SESSION = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[session_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[session_id]} | {name}:{function}:{line} - {message}"

INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


class InterceptHandler(logging.Handler):
    """
    Intercept standard logging and redirect to loguru, keeping session context
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        context = {
            name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)
        }
        logger.bind(**context).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _file_sink(log_file: str) -> Path:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging():
    """
    Route stdlib logging into loguru

    Console output always; a rotating file sink when LOG_FILE is set. LOG_JSON
    switches the file sink to loguru's serialized records.
    """
    logger.remove()
    logger.configure(extra={"session_id": NO_SESSION})

    logger.add(
        sys.stdout,
        enqueue=True,
        colorize=True,
        format=CONSOLE_FORMAT,
        level=settings.LOG_LEVEL,
    )

    if settings.LOG_FILE:
        logger.add(
            _file_sink(settings.LOG_FILE),
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            enqueue=True,
            serialize=settings.LOG_JSON,
            level=settings.LOG_LEVEL,
            format=FILE_FORMAT,
        )

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(settings.LOG_LEVEL)

    # Everything else propagates to the root handler
    for name in logging.root.manager.loggerDict.keys():
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False

    logger.info(
        f"Logging configured - Level: {settings.LOG_LEVEL}, "
        f"Environment: {settings.ENVIRONMENT}, File: {settings.LOG_FILE or 'off'}"
    )
