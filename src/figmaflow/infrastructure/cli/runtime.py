"""Wires adapters into a pipeline for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer

from figmaflow.application.dto.processing import ProcessFilesRequest, ProcessFilesResult
from figmaflow.application.ports.progress_reporter import ProgressReporterPort
from figmaflow.application.services.batch_pipeline import BatchPipeline
from figmaflow.application.services.image_resolver import ImageResolver
from figmaflow.application.services.ttl_cache import TTLCache
from figmaflow.application.use_cases.process_design_files import process_design_files
from figmaflow.infrastructure.adapters.figma_api_client import FigmaApiClient
from figmaflow.infrastructure.adapters.http_image_fetcher import HttpImageFetcher
from figmaflow.infrastructure.adapters.pillow_image_inspector import PillowImageInspector
from figmaflow.infrastructure.adapters.rate_limiter import SlidingWindowRateLimiter
from figmaflow.infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)


def load_settings(config_path: str | None) -> Settings:
    try:
        return Settings.from_toml(config_path)
    except Exception as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)


def build_client(settings: Settings, token: str) -> FigmaApiClient:
    file_cache = None
    if settings.api.cache_enabled:
        file_cache = TTLCache(
            max_size=settings.cache.max_size,
            default_ttl=settings.api.file_cache_ttl_seconds,
        )
    return FigmaApiClient(
        token=token,
        base_url=settings.api.base_url,
        timeout=settings.api.timeout_seconds,
        rate_limiter=SlidingWindowRateLimiter(max_requests=settings.api.rate_limit_per_minute),
        file_cache=file_cache,
    )


async def run_processing(
    settings: Settings,
    token: str,
    request: ProcessFilesRequest,
    progress_reporter: ProgressReporterPort | None = None,
    correlation_id: str | None = None,
) -> ProcessFilesResult:
    """Build the client, image resolver and pipeline, then process ``request``."""
    async with build_client(settings, token) as client, HttpImageFetcher(
        timeout=settings.api.timeout_seconds
    ) as fetcher:
        resolver = ImageResolver(
            image_source=client,
            fetcher=fetcher,
            inspector=PillowImageInspector(),
            cache=TTLCache(
                max_size=settings.cache.max_size,
                default_ttl=settings.cache.default_ttl_seconds,
            ),
        )
        pipeline = BatchPipeline(file_source=client, image_resolver=resolver)
        return await process_design_files(
            request,
            pipeline,
            progress_reporter=progress_reporter,
            correlation_id=correlation_id,
        )


def write_output(payload: Any, output: Path | None) -> None:
    """Write ``payload`` as JSON to ``output``, or to stdout when no path is given."""
    text = json.dumps(payload, indent=2, default=str)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    logger.info(f"Wrote results to {output}")
