"""Async REST client for design files, rendered images and comments."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Sequence

import httpx

from ...application.services.ttl_cache import TTLCache
from ...domain.errors import FigmaAPIError, FigmaAPIErrorType
from ...domain.types import FileKey
from ..config.settings import DEFAULT_BASE_URL
from .rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

FILE_CACHE_TTL_SECONDS = 300.0
RETRYABLE_ERRORS = frozenset({FigmaAPIErrorType.RATE_LIMIT_ERROR, FigmaAPIErrorType.NETWORK_ERROR})


@dataclass
class ApiMetrics:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time: float = 0.0
    rate_limit_hits: int = 0
    errors_by_type: Counter[str] = field(default_factory=Counter)

    @property
    def average_response_time(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.total_response_time / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "average_response_time": self.average_response_time,
            "rate_limit_hits": self.rate_limit_hits,
            "errors_by_type": dict(self.errors_by_type),
        }


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, Mapping):
        message = body.get("err") or body.get("message")
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def error_from_response(response: httpx.Response) -> FigmaAPIError:
    """Map a non-success response onto a :class:`FigmaAPIError`."""
    status = response.status_code
    message = _error_message(response)

    if status in (401, 403):
        return FigmaAPIError(
            FigmaAPIErrorType.AUTHENTICATION_ERROR,
            f"Authentication failed: {message}",
            status_code=status,
        )
    if status == 404:
        return FigmaAPIError(
            FigmaAPIErrorType.FILE_NOT_FOUND,
            f"File not found: {message}",
            status_code=status,
        )
    if status == 429:
        return FigmaAPIError(
            FigmaAPIErrorType.RATE_LIMIT_ERROR,
            f"Rate limit exceeded: {message}",
            status_code=status,
            retry_after=_retry_after(response),
        )
    return FigmaAPIError(
        FigmaAPIErrorType.NETWORK_ERROR,
        f"Request failed with status {status}: {message}",
        status_code=status,
    )


class FigmaApiClient:
    """
    Client for the design-tool REST API built on ``httpx.AsyncClient``.

    Serves as both the file source and the image source of the pipeline.
    Every request passes through a sliding-window rate limiter; rate-limit
    and network failures are retried with exponential backoff, while
    authentication and not-found failures raise immediately. Image render
    batches are never retried.

    Args:
        token: Personal access token sent as ``X-Figma-Token``
        base_url: API root (default: https://api.figma.com/v1)
        timeout: Per-request timeout in seconds
        rate_limiter: Limiter shared by all requests (default: 60/minute)
        file_cache: Optional cache for file responses (5 minute TTL)
        max_retries: Attempts per request for retryable failures
        transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests)
        sleep: Awaitable delay used between retries
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        file_cache: TTLCache[FileKey, Mapping[str, Any]] | None = None,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not token:
            raise FigmaAPIError(
                FigmaAPIErrorType.AUTHENTICATION_ERROR,
                "Access token is required",
            )
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self.file_cache = file_cache
        self.max_retries = max(1, max_retries)
        self.metrics = ApiMetrics()
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-Figma-Token": token},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "FigmaApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _record_failure(self, error: FigmaAPIError) -> None:
        self.metrics.failed_requests += 1
        self.metrics.errors_by_type[error.error_type.value] += 1
        if error.error_type is FigmaAPIErrorType.RATE_LIMIT_ERROR:
            self.metrics.rate_limit_hits += 1

    async def _send(self, path: str, params: Mapping[str, Any] | None) -> Any:
        await self.rate_limiter.acquire()
        self.metrics.total_requests += 1
        started = time.perf_counter()
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            error = FigmaAPIError(FigmaAPIErrorType.NETWORK_ERROR, "Request timeout")
            self._record_failure(error)
            raise error from e
        except httpx.HTTPError as e:
            error = FigmaAPIError(FigmaAPIErrorType.NETWORK_ERROR, f"Network error: {e}")
            self._record_failure(error)
            raise error from e
        finally:
            self.metrics.total_response_time += time.perf_counter() - started

        if response.is_error:
            error = error_from_response(response)
            self._record_failure(error)
            raise error

        try:
            payload = response.json()
        except ValueError as e:
            error = FigmaAPIError(
                FigmaAPIErrorType.PARSING_ERROR,
                f"Invalid JSON response from {path}",
                status_code=response.status_code,
            )
            self._record_failure(error)
            raise error from e

        self.metrics.successful_requests += 1
        return payload

    async def _request(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        attempts: int | None = None,
    ) -> Any:
        """GET ``path`` with rate limiting and retries for transient failures."""
        attempts = attempts or self.max_retries
        for attempt in range(attempts):
            try:
                return await self._send(path, params)
            except FigmaAPIError as e:
                if e.error_type not in RETRYABLE_ERRORS or attempt == attempts - 1:
                    raise
                if e.retry_after is not None:
                    delay = e.retry_after
                else:
                    delay = min(2**attempt, 30.0)
                    delay = max(0.0, delay + delay * 0.25 * (2 * random.random() - 1))
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} for {path} failed, "
                    f"retrying in {delay:.2f}s: {e}",
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")

    async def get_file(
        self,
        file_key: str,
        version: str | None = None,
        ids: Sequence[str] = (),
    ) -> Mapping[str, Any]:
        """
        Fetch a file response (document tree, styles, components).

        Args:
            file_key: Design file key
            version: Optional version id
            ids: Optional node ids to restrict the tree to

        Returns:
            Parsed JSON response
        """
        cache_key = FileKey(file_key=file_key, version=version, node_ids=tuple(ids))
        if self.file_cache is not None:
            cached = self.file_cache.get(cache_key)
            if cached is not None:
                logger.debug(f"File cache hit for {file_key}")
                return cached

        params: dict[str, Any] = {}
        if version:
            params["version"] = version
        if ids:
            params["ids"] = ",".join(ids)

        data = await self._request(f"/files/{file_key}", params or None)
        if self.file_cache is not None:
            self.file_cache.set(cache_key, data, ttl=FILE_CACHE_TTL_SECONDS)
        return data

    async def get_images(
        self,
        file_key: str,
        node_ids: Sequence[str],
        *,
        format: str = "png",
        scale: float = 1.0,
    ) -> Mapping[str, Any]:
        """Render a batch of nodes. Batches get a single attempt."""
        params = {"ids": ",".join(node_ids), "format": format, "scale": scale}
        return await self._request(f"/images/{file_key}", params, attempts=1)

    async def get_comments(self, file_key: str) -> list[dict[str, Any]]:
        data = await self._request(f"/files/{file_key}/comments")
        return list(data.get("comments", []))

    async def test_connection(self) -> bool:
        """True when the token is accepted; transport and auth failures give False."""
        try:
            await self._request("/me")
        except FigmaAPIError as e:
            logger.warning(f"Connection test failed: {e}")
            return False
        return True

    def clear_cache(self) -> None:
        if self.file_cache is not None:
            self.file_cache.clear()
