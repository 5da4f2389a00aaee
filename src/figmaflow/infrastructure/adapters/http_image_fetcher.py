"""Downloads rendered images over HTTP."""

from __future__ import annotations

import logging

import httpx

from ...application.ports.image_fetcher import ImageFetchResult

logger = logging.getLogger(__name__)


class HttpImageFetcher:
    """
    Fetches image payloads with a single GET per URL.

    Args:
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests)
    """

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    async def fetch(self, url: str) -> ImageFetchResult:
        response = await self._client.get(url)
        response.raise_for_status()
        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return ImageFetchResult(
            url=url,
            content=response.content,
            content_type=response.headers.get("Content-Type"),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpImageFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
