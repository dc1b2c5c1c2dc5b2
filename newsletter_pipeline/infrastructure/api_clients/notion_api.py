"""Notion API client for newsletter pages, blocks and contacts."""

from typing import Any, Dict, List, Optional

import aiohttp

from newsletter_pipeline.infrastructure.logging import get_logger

# Notion caps both page size and append batch size at 100.
PAGE_SIZE = 100
APPEND_BATCH_SIZE = 100


class NotionAPIError(Exception):
    """Notion API error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotionAPIClient:
    """Thin async client over the Notion REST API."""

    def __init__(
        self,
        api_key: str,
        notion_version: str = "2022-06-28",
        base_url: str = "https://api.notion.com/v1",
        timeout: int = 30,
    ):
        """Initialize Notion API client.

        Args:
            api_key: Notion integration token
            notion_version: Value of the Notion-Version header
            base_url: API base URL
            timeout: Total request timeout in seconds
        """
        if not api_key:
            raise NotionAPIError("Notion API key not provided")

        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = get_logger(__name__, service="notion")

        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an API request and return the decoded JSON body."""
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.request(
                method,
                f"{self.base_url}/{path}",
                headers=self.headers,
                json=payload,
                params=params,
            ) as response:
                if 200 <= response.status < 300:
                    return await response.json()

                error_text = await response.text()
                raise NotionAPIError(
                    f"Notion API error {response.status} on {method} {path}: {error_text}",
                    status_code=response.status,
                )

    async def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        """Fetch a page with its properties."""
        return await self._request("GET", f"pages/{page_id}")

    async def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Update page properties."""
        return await self._request("PATCH", f"pages/{page_id}", {"properties": properties})

    async def list_block_children(self, block_id: str) -> List[Dict[str, Any]]:
        """Fetch every child block of a page, following pagination."""
        results: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            params: Dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor

            data = await self._request("GET", f"blocks/{block_id}/children", params=params)
            results.extend(data.get("results", []))

            if not data.get("has_more") or not data.get("next_cursor"):
                break
            cursor = data["next_cursor"]

        return results

    async def append_block_children(self, block_id: str, children: List[Dict[str, Any]]) -> int:
        """Append blocks in batches the API accepts.

        Returns:
            Number of batches sent
        """
        batches = 0
        for start in range(0, len(children), APPEND_BATCH_SIZE):
            batch = children[start:start + APPEND_BATCH_SIZE]
            await self._request("PATCH", f"blocks/{block_id}/children", {"children": batch})
            batches += 1

        self.logger.debug("Appended blocks", block_id=block_id, blocks=len(children), batches=batches)
        return batches

    async def delete_block(self, block_id: str) -> None:
        """Delete (archive) a single block."""
        await self._request("DELETE", f"blocks/{block_id}")

    async def query_database(
        self,
        database_id: str,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Query a database, following pagination."""
        results: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            payload: Dict[str, Any] = {"page_size": PAGE_SIZE}
            if filter:
                payload["filter"] = filter
            if cursor:
                payload["start_cursor"] = cursor

            data = await self._request("POST", f"databases/{database_id}/query", payload)
            results.extend(data.get("results", []))

            if not data.get("has_more") or not data.get("next_cursor"):
                break
            cursor = data["next_cursor"]

        return results
