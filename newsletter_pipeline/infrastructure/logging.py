"""Logging configuration for the newsletter send pipeline."""

import logging
import logging.config
import sys
from typing import Any, Dict

import structlog
from rich.logging import RichHandler

from newsletter_pipeline.infrastructure.config import get_logs_dir

# Per-request and per-connection chatter from the HTTP stack.
QUIET_LOGGERS = ("aiohttp", "asyncio", "uvicorn.access")


def setup_logging(
    level: str = "INFO",
    format_type: str = "structured",
    log_file: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Set up structured logging with rich console output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format type ("structured" or "text")
        log_file: Whether to log to file

    Returns:
        Configured structlog logger
    """
    log_level = getattr(logging, level.upper())

    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    shared_processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "structured":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = []

    if format_type == "text":
        rich_handler = RichHandler(
            rich_tracebacks=True,
            show_path=False,
            show_time=False,  # timestamp comes from the processors
        )
        rich_handler.setLevel(log_level)
        handlers.append(rich_handler)
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(get_logs_dir() / "newsletter.log")
        file_handler.setLevel(logging.DEBUG)
        if format_type == "structured":
            file_formatter = logging.Formatter('%(message)s')
        else:
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = structlog.get_logger("newsletter")
    logger.info("Logging configured", level=level, format=format_type)

    return logger


def get_logger(name: str, **context) -> structlog.stdlib.BoundLogger:
    """Logger for ``name`` with ``context`` bound to every event it emits."""
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


class LoggerMixin:
    """Gives pipeline services a ``logger`` tagged with their component name.

    Subclasses can set ``log_context`` to bind extra keys, e.g. the backing
    service a client talks to.
    """

    log_context: Dict[str, Any] = {}

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if "_logger" not in self.__dict__:
            self._logger = get_logger(
                type(self).__module__,
                component=type(self).__name__,
                **self.log_context,
            )
        return self._logger
