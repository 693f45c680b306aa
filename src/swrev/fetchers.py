"""HTTP fetcher used when no fetcher is configured."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from swrev.errors import FetchError

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Fetcher that GETs the key as a URL and decodes the JSON body.

    Without an injected client a short-lived ``httpx.AsyncClient`` is
    opened per request, so the fetcher is safe to share across event loops.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._headers = headers or {}
        self._timeout = timeout

    async def __call__(self, key: str, *_: Any) -> Any:
        if self._client is not None:
            return await self._request(self._client, key)
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
        ) as client:
            return await self._request(client, key)

    async def _request(self, client: httpx.AsyncClient, url: str) -> Any:
        """Make a GET request, raising FetchError for non-2xx responses."""
        logger.debug("GET %s", url)
        response = await client.get(url)
        if not response.is_success:
            raise FetchError(str(response.request.url), response.status_code)
        return response.json()


http_fetcher = HttpFetcher()
