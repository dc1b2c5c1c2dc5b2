"""Permanent image storage for newsletter images.

Images uploaded to the workspace are served from signed URLs that expire
after about an hour, which breaks them in any email opened later. Before
rendering, each image is copied into a public Supabase Storage bucket.
"""

import hashlib
import mimetypes
from typing import Optional
from urllib.parse import urlsplit

import aiohttp

from newsletter_pipeline.infrastructure.error_handling import handle_service_errors
from newsletter_pipeline.infrastructure.logging import get_logger


class ImageStorageError(Exception):
    """Image storage error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def storage_path(url: str, page_id: str, content_type: str = "") -> str:
    """Stable object path for an image URL.

    The query string (signature and expiry) is ignored so the same image
    always lands on the same object.
    """
    parts = urlsplit(url)
    digest = hashlib.sha1(f"{parts.netloc}{parts.path}".encode("utf-8")).hexdigest()[:16]

    extension = ""
    last_segment = parts.path.rsplit("/", 1)[-1]
    if "." in last_segment:
        extension = "." + last_segment.rsplit(".", 1)[-1].lower()
    elif content_type:
        extension = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""

    return f"{page_id}/{digest}{extension}"


class ImageStorageClient:
    """Copies images from expiring URLs into permanent storage."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "newsletter-images",
        timeout: int = 30,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = get_logger(__name__, service="storage")

    def public_url(self, path: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{path}"

    @handle_service_errors("Image storage", log_level="warning", reraise=False)
    async def upload_image(self, url: str, page_id: str) -> Optional[str]:
        """Rehost an image and return its permanent URL.

        Returns None (after logging) when the download or upload fails, so
        callers fall back to the original URL.
        """
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ImageStorageError(
                        f"Image download failed with {response.status}",
                        status_code=response.status,
                    )
                content_type = response.headers.get("Content-Type", "application/octet-stream")
                data = await response.read()

            path = storage_path(url, page_id, content_type)
            async with session.post(
                f"{self.supabase_url}/storage/v1/object/{self.bucket}/{path}",
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": content_type,
                    "x-upsert": "true",
                },
                data=data,
            ) as response:
                if response.status not in (200, 201):
                    error_text = await response.text()
                    raise ImageStorageError(
                        f"Image upload failed with {response.status}: {error_text}",
                        status_code=response.status,
                    )

        permanent_url = self.public_url(path)
        self.logger.info("Image rehosted", page_id=page_id, path=path, bytes=len(data))
        return permanent_url
