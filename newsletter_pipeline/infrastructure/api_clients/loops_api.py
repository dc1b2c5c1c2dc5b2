"""Loops API client for transactional email delivery."""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from newsletter_pipeline.infrastructure.logging import get_logger


class LoopsAPIError(Exception):
    """Loops API error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class LoopsResponse:
    """Outcome of a single transactional send."""

    status: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class LoopsClient:
    """Sends one transactional email per call."""

    def __init__(
        self,
        api_key: str,
        transactional_id: str,
        base_url: str = "https://app.loops.so/api/v1",
        timeout: int = 30,
        configured: Optional[bool] = None,
    ):
        self.api_key = api_key
        self.transactional_id = transactional_id
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._configured = configured
        self.logger = get_logger(__name__, service="loops")

    @property
    def is_configured(self) -> bool:
        """Whether both the API key and the template identifier are set."""
        if self._configured is not None:
            return self._configured
        return bool(self.api_key and self.transactional_id)

    async def send_transactional(self, email: str, data_variables: Dict[str, Any]) -> LoopsResponse:
        """Send the transactional template to one address.

        Args:
            email: Recipient email address
            data_variables: Template variables

        Returns:
            Response status and body; non-2xx responses are returned, not raised

        Raises:
            LoopsAPIError: If the request could not be made at all
        """
        payload = {
            "transactionalId": self.transactional_id,
            "email": email,
            "dataVariables": data_variables,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    f"{self.base_url}/transactional",
                    headers=headers,
                    json=payload,
                ) as response:
                    return LoopsResponse(status=response.status, body=await response.text())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LoopsAPIError(f"Failed to reach Loops: {e}") from e
