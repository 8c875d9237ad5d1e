"""Structured logging: structlog events rendered through stdlib handlers."""

import functools
import inspect
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional

import colorlog
import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.typing import Processor


# Library loggers that are noisy at INFO (one line per tick or request)
QUIET_LOGGERS = ("apscheduler", "aiohttp.access")

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None
) -> None:
    """Configure structlog and the root handlers.

    Events are rendered once by structlog (JSON lines or console text) and
    handed to the stdlib root logger, which writes them to stdout through
    colorlog and, if ``log_file`` is set, to a rotating file. Values bound
    with ``sync_context`` are merged into every event. Calling this again
    replaces the handlers installed by the previous call.
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer: Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if log_file:
        root_logger.addHandler(_file_handler(log_file, level))
    root_logger.addHandler(_console_handler(level))


def _file_handler(file_path: str, level: int) -> logging.Handler:
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        file_path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(message)s",
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def sync_context(**values: Any):
    """Bind ``values`` to every event logged inside the block.

    The binding follows awaits within the current task, so calls made by
    the sync engine into the store and the remote client carry it too.
    """
    return bound_contextvars(**values)


def log_duration(func: Callable) -> Callable:
    """Log how long ``func`` took, at debug on success and error on failure.

    Works for plain and coroutine functions. Exceptions are re-raised.
    """
    logger = get_logger(func.__module__)
    operation = func.__qualname__

    def elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error("Operation failed", operation=operation, duration_ms=elapsed_ms(start), error=str(e))
                raise
            logger.debug("Operation finished", operation=operation, duration_ms=elapsed_ms(start))
            return result

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error("Operation failed", operation=operation, duration_ms=elapsed_ms(start), error=str(e))
            raise
        logger.debug("Operation finished", operation=operation, duration_ms=elapsed_ms(start))
        return result

    return wrapper
