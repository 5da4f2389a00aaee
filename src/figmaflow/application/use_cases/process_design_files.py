from __future__ import annotations

import logging
import time

from ...domain.errors import PipelineStageError
from ..dto.processing import ProcessFilesRequest, ProcessFilesResult
from ..ports.progress_reporter import ProgressReporterPort
from ..services.batch_pipeline import BatchPipeline
from ..services.events import ErrorEvent, PipelineEvent

logger = logging.getLogger(__name__)


async def process_design_files(
    request: ProcessFilesRequest,
    pipeline: BatchPipeline,
    progress_reporter: ProgressReporterPort | None = None,
    correlation_id: str | None = None,
) -> ProcessFilesResult:
    """
    Process one or more design files and collect serializable results.

    A single file runs through ``process_file``; several files run through
    ``process_multiple_files`` in waves. Fatal per-file failures are reported
    in ``failed`` rather than raised.

    Args:
        request: File keys and processing options
        pipeline: Configured BatchPipeline
        progress_reporter: Optional reporter subscribed to the pipeline's events
        correlation_id: Optional correlation ID for log records

    Returns:
        ProcessFilesResult with processed keys, failures, results and warnings
    """
    start_time = time.time()
    extra = {"correlation_id": correlation_id} if correlation_id else {}
    logger.info(f"Starting processing of {len(request.file_keys)} design files", extra=extra)

    failed: dict[str, str] = {}

    def collect_failures(event: PipelineEvent) -> None:
        if isinstance(event, ErrorEvent) and not event.recoverable:
            failed[event.document_id] = str(event.error)

    unsubscribe_failures = pipeline.events.subscribe(collect_failures)
    unsubscribe_reporter = None
    if progress_reporter is not None:
        progress_reporter.start(request.file_keys)
        unsubscribe_reporter = pipeline.events.subscribe(progress_reporter.handle)

    try:
        if len(request.file_keys) == 1:
            try:
                results = [await pipeline.process_file(request.file_keys[0], request.options)]
            except PipelineStageError as e:
                failed.setdefault(request.file_keys[0], str(e))
                results = []
        else:
            results = await pipeline.process_multiple_files(request.file_keys, request.options)
    finally:
        unsubscribe_failures()
        if unsubscribe_reporter is not None:
            unsubscribe_reporter()
        if progress_reporter is not None:
            progress_reporter.finish()

    processed = [result.file_key or result.document.id for result in results]
    for key in request.file_keys:
        if key not in processed and key not in failed:
            failed[key] = "processing did not complete"

    warnings: list[str] = []
    for result in results:
        key = result.file_key or result.document.id
        warnings.extend(f"{key}: {w}" for w in result.document.metadata.warnings)
        warnings.extend(
            f"{key}: {e.stage}: {e.error}" for e in result.metadata.errors if e.recoverable
        )

    duration = time.time() - start_time
    logger.info(
        f"Processed {len(processed)}/{len(request.file_keys)} design files in {duration:.2f}s",
        extra=extra,
    )
    return ProcessFilesResult(
        processed=processed,
        failed=failed,
        duration_seconds=duration,
        results=[result.to_dict() for result in results],
        warnings=warnings,
    )
