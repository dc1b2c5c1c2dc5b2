"""Infrastructure layer for external integrations, configuration and logging."""

from .api_clients import ImageStorageClient, LoopsClient, NotionAPIClient
from .config import ApplicationConfig, load_config
from .logging import setup_logging
from .error_handling import (
    ConfigurationError,
    DeliveryError,
    PipelineError,
    handle_service_errors,
)

__all__ = [
    "ImageStorageClient",
    "LoopsClient",
    "NotionAPIClient",
    "ApplicationConfig",
    "load_config",
    "setup_logging",
    "ConfigurationError",
    "DeliveryError",
    "PipelineError",
    "handle_service_errors",
]
