"""Direct API client integrations."""

from .image_storage import ImageStorageClient, ImageStorageError
from .loops_api import LoopsAPIError, LoopsClient, LoopsResponse
from .notion_api import NotionAPIClient, NotionAPIError

__all__ = [
    "ImageStorageClient",
    "ImageStorageError",
    "LoopsAPIError",
    "LoopsClient",
    "LoopsResponse",
    "NotionAPIClient",
    "NotionAPIError",
]
