"""Error types and error handling utilities for the send pipeline."""

import functools
from typing import Any, Callable, Optional, TypeVar, cast

from newsletter_pipeline.infrastructure.logging import get_logger

F = TypeVar('F', bound=Callable[..., Any])
logger = get_logger(__name__)


class PipelineError(Exception):
    """Base error for the send pipeline."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(PipelineError):
    """A required setting is missing or invalid."""


class DeliveryError(PipelineError):
    """A dispatch could not reach any recipient."""


def handle_service_errors(
    service_name: str,
    log_level: str = "error",
    reraise: bool = True
) -> Callable[[F], F]:
    """
    Decorator for service-level error handling.

    Args:
        service_name: Name of the service for logging context
        log_level: Logging level ('error', 'warning', 'info')
        reraise: Whether to re-raise the exception after logging; when False
            the wrapped coroutine returns None instead

    Usage:
        @handle_service_errors("Notion store")
        async def fetch_newsletter(self, document_id: str) -> Newsletter:
            ...
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                log_func = getattr(logger, log_level, logger.error)
                log_func(
                    f"Error in {service_name}.{func.__name__}",
                    error=str(e),
                    exception_type=type(e).__name__,
                    exc_info=True,
                )

                if reraise:
                    raise
                return None

        return cast(F, wrapper)
    return decorator
