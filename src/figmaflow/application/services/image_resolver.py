"""Batched, rate-limited resolution of node ids to image URLs and descriptors."""

from __future__ import annotations

import asyncio
import base64
import logging
from html import escape
from typing import Any, Awaitable, Callable, Mapping, Sequence

from ...domain.errors import ImageBatchError, OptimizationError
from ...domain.models.document import ParsedElement
from ...domain.models.image import ImageMap, OptimizedImage, OptimizedImageMap
from ...domain.types import ImageBatchKey, InlineImageKey, OptimizedImageKey
from ...domain.services.style_resolver import format_number
from ..dto.processing import ImageProcessingOptions
from ..ports.image_fetcher import ImageInfo, ImageInspectorPort, ImageFetcherPort
from ..ports.image_source import ImageSourcePort
from .ttl_cache import TTLCache

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50
BATCH_TTL_SECONDS = 15 * 60
OPTIMIZED_TTL_SECONDS = 30 * 60
INLINE_TTL_SECONDS = 60 * 60
PLACEHOLDER_WIDTH = 200
PLACEHOLDER_HEIGHT = 150


def create_batches(items: Sequence[str], batch_size: int) -> list[list[str]]:
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def generate_placeholder(
    name: str = "Image",
    width: float = PLACEHOLDER_WIDTH,
    height: float = PLACEHOLDER_HEIGHT,
) -> str:
    """Inline SVG data URL showing ``name``, used when an image cannot be resolved."""
    svg = (
        f'<svg width="{format_number(width)}" height="{format_number(height)}" '
        'xmlns="http://www.w3.org/2000/svg">'
        '<rect width="100%" height="100%" fill="#f0f0f0" stroke="#ddd" stroke-width="2"/>'
        '<text x="50%" y="50%" text-anchor="middle" dy="0.3em" '
        'font-family="Arial, sans-serif" font-size="14" fill="#999">'
        f"{escape(name or 'Image')}</text></svg>"
    )
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def _placeholder_for(node_id: str, elements: Mapping[str, ParsedElement]) -> str:
    element = elements.get(node_id)
    if element is None:
        return generate_placeholder()
    return generate_placeholder(
        element.name,
        element.bounds.width or PLACEHOLDER_WIDTH,
        element.bounds.height or PLACEHOLDER_HEIGHT,
    )


def _data_url_format(url: str) -> str:
    # data:image/svg+xml;base64,...
    media_type = url[5:].split(";", 1)[0].split(",", 1)[0]
    subtype = media_type.partition("/")[2]
    if subtype.startswith("svg"):
        return "svg"
    if subtype == "jpeg":
        return "jpg"
    return subtype or "unknown"


class ImageResolver:
    """
    Resolves node ids to image URLs in sequential, cached batches.

    Batches hold at most 50 ids and are sent one at a time with a fixed delay
    between network calls. A failed batch never stops the others: its ids get
    placeholders (when requested) and the failure is reported through
    ``on_error``. Each batch gets exactly one attempt.

    Args:
        image_source: Collaborator rendering node images
        fetcher: Downloads images for optimization (optional)
        inspector: Decodes image payloads for optimization (optional)
        cache: Shared TTL cache; a private one is created when omitted
        sleep: Awaitable delay used between batches (injectable for tests)
    """

    def __init__(
        self,
        image_source: ImageSourcePort,
        fetcher: ImageFetcherPort | None = None,
        inspector: ImageInspectorPort | None = None,
        cache: TTLCache[Any, Any] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.image_source = image_source
        self.fetcher = fetcher
        self.inspector = inspector
        self.cache: TTLCache[Any, Any] = cache if cache is not None else TTLCache()
        self._sleep = sleep
        self.cache_hits = 0
        self.network_calls = 0

    async def resolve_images(
        self,
        document_id: str,
        node_ids: Sequence[str],
        options: ImageProcessingOptions | None = None,
        *,
        elements: Mapping[str, ParsedElement] | None = None,
        on_error: Callable[[ImageBatchError], None] | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> ImageMap:
        """
        Resolve ``node_ids`` to image URLs.

        Args:
            document_id: Design file key
            node_ids: Ids to render; duplicates are resolved once
            options: Format, scale, batch size, delay and placeholder settings
            elements: Parsed elements by id, used to name and size placeholders
            on_error: Called with each recoverable batch failure
            on_progress: Called with (batches_done, batch_count) after each batch

        Returns:
            Mapping of node id to URL (or placeholder data URL)
        """
        options = options or ImageProcessingOptions()
        elements = elements or {}
        unique_ids = list(dict.fromkeys(node_ids))
        batch_size = min(options.batch_size, MAX_BATCH_SIZE)
        batches = create_batches(unique_ids, batch_size)

        logger.info(
            f"Resolving {len(unique_ids)} images in {len(batches)} batches",
            extra={"document_id": document_id},
        )

        images: ImageMap = {}
        called_network = False
        for index, batch in enumerate(batches):
            key = ImageBatchKey.create(document_id, batch, options.format, options.scale)
            batch_images = self.cache.get(key)
            if batch_images is not None:
                self.cache_hits += 1
                logger.debug(f"Cache hit for batch {index + 1} ({len(batch)} images)")
            else:
                if called_network and options.batch_delay_seconds > 0:
                    await self._sleep(options.batch_delay_seconds)
                called_network = True
                try:
                    batch_images = await self._fetch_batch(document_id, index, batch, options)
                    self.cache.set(key, batch_images, ttl=BATCH_TTL_SECONDS)
                except ImageBatchError as e:
                    logger.warning(str(e), extra={"document_id": document_id, "batch_index": index})
                    if on_error is not None:
                        on_error(e)
                    batch_images = {}

            for node_id in batch:
                url = batch_images.get(node_id)
                if url:
                    images[node_id] = url
                elif options.generate_placeholders:
                    images[node_id] = _placeholder_for(node_id, elements)

            if on_progress is not None:
                on_progress(index + 1, len(batches))

        logger.info(
            f"Resolved {len(images)}/{len(unique_ids)} images",
            extra={"document_id": document_id},
        )
        return images

    async def _fetch_batch(
        self,
        document_id: str,
        index: int,
        batch: list[str],
        options: ImageProcessingOptions,
    ) -> dict[str, str]:
        self.network_calls += 1
        try:
            response = await self.image_source.get_images(
                document_id, batch, format=options.format, scale=options.scale
            )
        except Exception as exc:
            raise ImageBatchError(document_id, index, batch, str(exc)) from exc

        if response.get("err"):
            raise ImageBatchError(document_id, index, batch, str(response["err"]))
        raw = response.get("images") or {}
        return {str(node_id): url for node_id, url in raw.items() if url}

    async def optimize(
        self,
        images: ImageMap,
        options: ImageProcessingOptions | None = None,
        *,
        on_error: Callable[[OptimizationError], None] | None = None,
    ) -> OptimizedImageMap:
        """
        Optimize every image concurrently (bounded by ``options.max_concurrency``).

        A per-image failure yields an unoptimized descriptor for that image
        and never fails the whole call.
        """
        options = options or ImageProcessingOptions()
        semaphore = asyncio.Semaphore(options.max_concurrency)

        async def optimize_one(node_id: str, url: str) -> tuple[str, OptimizedImage]:
            async with semaphore:
                try:
                    return node_id, await self.optimize_image(url, options)
                except OptimizationError as e:
                    logger.warning(str(e), extra={"node_id": node_id})
                    if on_error is not None:
                        on_error(e)
                    return node_id, OptimizedImage.unoptimized(url)

        logger.info(f"Optimizing {len(images)} images")
        results = await asyncio.gather(
            *(optimize_one(node_id, url) for node_id, url in images.items())
        )
        return dict(results)

    async def optimize_image(self, url: str, options: ImageProcessingOptions) -> OptimizedImage:
        """
        Describe one image with a single download.

        Raises:
            OptimizationError: If the image cannot be downloaded or decoded
        """
        key = OptimizedImageKey(
            url=url,
            max_width=options.max_width,
            max_height=options.max_height,
            quality=options.quality,
            inline_base64=options.inline_base64,
        )
        cached = self.cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        if url.startswith("data:"):
            optimized = OptimizedImage(
                url=url,
                format=_data_url_format(url),
                size=len(url),
                base64=url if options.inline_base64 else None,
            )
            self.cache.set(key, optimized, ttl=OPTIMIZED_TTL_SECONDS)
            return optimized

        if self.fetcher is None or self.inspector is None:
            raise OptimizationError(url, "no image fetcher configured")

        try:
            fetched = await self.fetcher.fetch(url)
            # decoding and re-encoding run on a worker thread
            info = await asyncio.to_thread(
                self.inspector.inspect, fetched.content, fetched.content_type
            )
            inline = (
                await self._inline(self.inspector, fetched.content, info, url, options)
                if options.inline_base64
                else None
            )
        except OptimizationError:
            raise
        except Exception as exc:
            raise OptimizationError(url, str(exc)) from exc

        optimized = OptimizedImage(
            url=url,
            width=info.width,
            height=info.height,
            format=info.format,
            size=len(fetched.content),
            optimized=True,
            base64=inline,
        )
        self.cache.set(key, optimized, ttl=OPTIMIZED_TTL_SECONDS)
        return optimized

    async def _inline(
        self,
        inspector: ImageInspectorPort,
        content: bytes,
        info: ImageInfo,
        url: str,
        options: ImageProcessingOptions,
    ) -> str:
        key = InlineImageKey(
            url=url,
            max_width=options.max_width,
            max_height=options.max_height,
            quality=options.quality,
        )
        cached = self.cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached
        data_url = await asyncio.to_thread(
            inspector.to_data_url,
            content,
            info,
            options.max_width,
            options.max_height,
            options.quality,
        )
        self.cache.set(key, data_url, ttl=INLINE_TTL_SECONDS)
        return data_url
