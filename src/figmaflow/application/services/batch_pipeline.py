"""Staged processing of design files: fetch, parse, images, analysis, CSS."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

from ...domain.errors import (
    AnalysisError,
    FetchError,
    ParseError,
    PipelineCancelledError,
    PipelineStageError,
)
from ...domain.models.analysis import ComponentAnalysis
from ...domain.models.document import ParsedDocument
from ...domain.models.image import OptimizedImage, OptimizedImageMap
from ...domain.models.processing import (
    BatchError,
    BatchProcessingResult,
    PerformanceMetrics,
    ProcessingMetadata,
    StageMetadata,
)
from ...domain.services.component_analyzer import analyze_components
from ...domain.services.css_generator import CssOptions, generate_document_css
from ...domain.services.document_parser import DocumentParser, count_nodes, extract_image_nodes
from ...domain.services.progress_aggregator import ProgressAggregator
from ...domain.types import Stage
from ..dto.processing import BatchProcessingOptions
from ..ports.file_source import FileSourcePort
from .events import ErrorEvent, PipelineEventBus, ProgressEvent
from .image_resolver import ImageResolver

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]
ErrorCallback = Callable[[BatchError], None]

DEFAULT_CONCURRENCY = 3


class CancellationToken:
    """Cooperative cancellation flag, honored only at stage boundaries."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


@dataclass
class _RunState:
    """Per-document bookkeeping for one pipeline run."""

    document_id: str
    options: BatchProcessingOptions
    on_progress: ProgressCallback | None
    on_error: ErrorCallback | None
    progress: ProgressAggregator = field(default_factory=ProgressAggregator)
    stages: list[StageMetadata] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)


def _notify(callback: Callable[[Any], None] | None, payload: Any) -> None:
    if callback is None:
        return
    try:
        callback(payload)
    except Exception:
        logger.exception("Pipeline callback failed")


class BatchPipeline:
    """
    Sequential stage machine over one design file, plus wave-based multi-file mode.

    ``fetching`` and ``parsing`` failures are fatal: the call raises, and the
    error carries the StageMetadata collected so far in ``error.stages``.
    ``images`` and ``analysis`` failures are recoverable: they are recorded
    as BatchError entries and the corresponding result field is left None.

    Args:
        file_source: Collaborator fetching file responses
        image_resolver: Resolver used by the images stage (required for it)
        parser: Document parser (default policy when omitted)
        event_bus: Bus receiving every ProgressEvent and ErrorEvent
        clock: Wall-clock source for stage timestamps
        timer: Monotonic source in seconds for durations
    """

    def __init__(
        self,
        file_source: FileSourcePort,
        image_resolver: ImageResolver | None = None,
        parser: DocumentParser | None = None,
        event_bus: PipelineEventBus | None = None,
        clock: Callable[[], datetime] | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.file_source = file_source
        self.image_resolver = image_resolver
        self.parser = parser or DocumentParser()
        self.events = event_bus or PipelineEventBus()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._timer = timer
        self._cancellation = CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self._cancellation.cancelled

    def cancel(self) -> None:
        """
        Stop further stages from starting.

        In-flight network calls are not aborted; the run stops at the next
        stage boundary with PipelineCancelledError.
        """
        logger.info("Pipeline cancellation requested")
        self._cancellation.cancel()

    def reset_cancellation(self) -> None:
        self._cancellation.reset()

    async def process_file(
        self,
        file_key: str,
        options: BatchProcessingOptions | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> BatchProcessingResult:
        """
        Run every requested stage for one design file.

        Args:
            file_key: Design file key
            options: Which optional stages to run and their settings
            on_progress: Called with each ProgressEvent of this run
            on_error: Called with each BatchError as it is recorded

        Returns:
            BatchProcessingResult; a non-empty ``metadata.errors`` accompanies
            any partial result

        Raises:
            FetchError: If the file cannot be fetched
            ParseError: If the root node is unreadable
            PipelineCancelledError: If cancel() was called before a stage started
        """
        state = _RunState(
            document_id=file_key,
            options=options or BatchProcessingOptions(),
            on_progress=on_progress,
            on_error=on_error,
        )
        start_time = self._clock()
        started = self._timer()
        hits_before = self.image_resolver.cache_hits if self.image_resolver else 0

        logger.info(f"Processing design file {file_key}", extra={"document_id": file_key})
        images: OptimizedImageMap | None = None
        analysis: list[ComponentAnalysis] | None = None
        css: str | None = None

        try:
            self._check_cancelled(Stage.FETCHING)
            file_data = await self._fetch(state)

            self._check_cancelled(Stage.PARSING)
            document = self._parse(state, file_data)

            self._check_cancelled(Stage.IMAGES)
            if state.options.include_images:
                images = await self._images(state, document)
            else:
                state.progress.skip_stage(Stage.IMAGES)

            self._check_cancelled(Stage.ANALYSIS)
            if state.options.analyze_components:
                analysis = self._analyze(state, document)
            else:
                state.progress.skip_stage(Stage.ANALYSIS)

            self._check_cancelled(Stage.CSS_GENERATION)
            if state.options.generate_css:
                css = self._generate_css(state, document)
        except PipelineStageError as e:
            e.stages = list(state.stages)
            self._record_error(state, e.stage, e, recoverable=False)
            logger.error(
                f"Processing of {file_key} stopped at stage '{e.stage}': {e}",
                extra={"document_id": file_key, "stage": e.stage},
            )
            raise

        state.progress.finish()
        self._emit(state, Stage.COMPLETE, "Processing complete!")

        end_time = self._clock()
        duration = self._timer() - started
        hits_after = self.image_resolver.cache_hits if self.image_resolver else 0
        metadata = ProcessingMetadata(
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            stages=state.stages,
            errors=state.errors,
            performance=calculate_performance_metrics(
                state.stages, duration, cache_hits=hits_after - hits_before
            ),
        )
        logger.info(
            f"Processed {file_key} in {duration:.2f}s with {len(state.errors)} recoverable errors",
            extra={"document_id": file_key},
        )
        return BatchProcessingResult(
            document=document,
            metadata=metadata,
            images=images,
            analysis=analysis,
            css=css,
            file_key=file_key,
        )

    async def process_multiple_files(
        self,
        file_keys: Sequence[str],
        options: BatchProcessingOptions | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> list[BatchProcessingResult]:
        """
        Process files in waves of ``options.max_concurrency``.

        Files within a wave run concurrently; the next wave starts once the
        current one has settled. A failed file is logged and omitted from the
        result list without affecting the other files. Cancellation stops
        new waves from starting.
        """
        options = options or BatchProcessingOptions()
        concurrency = options.max_concurrency or DEFAULT_CONCURRENCY
        results: list[BatchProcessingResult] = []

        logger.info(f"Processing {len(file_keys)} files, {concurrency} at a time")
        for start in range(0, len(file_keys), concurrency):
            if self.cancelled:
                logger.info(f"Cancelled before wave starting at index {start}")
                break
            wave = list(file_keys[start : start + concurrency])
            outcomes = await asyncio.gather(
                *(
                    self.process_file(key, options, on_progress=on_progress, on_error=on_error)
                    for key in wave
                ),
                return_exceptions=True,
            )
            for key, outcome in zip(wave, outcomes):
                if isinstance(outcome, BatchProcessingResult):
                    results.append(outcome)
                elif isinstance(outcome, Exception):
                    logger.error(
                        f"Failed to process file {key}: {outcome}",
                        extra={"document_id": key},
                    )
                else:
                    raise outcome

        logger.info(f"Processed {len(results)}/{len(file_keys)} files")
        return results

    def _check_cancelled(self, stage: Stage) -> None:
        if self._cancellation.cancelled:
            raise PipelineCancelledError(stage.value)

    def _emit(
        self,
        state: _RunState,
        stage: Stage,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        event = ProgressEvent(
            document_id=state.document_id,
            stage=stage,
            percent=state.progress.percent,
            message=message,
            details=dict(details or {}),
        )
        _notify(state.on_progress, event)
        self.events.publish(event)

    def _record_error(
        self,
        state: _RunState,
        stage: str,
        error: BaseException,
        recoverable: bool,
    ) -> None:
        batch_error = BatchError(stage=stage, error=error, recoverable=recoverable)
        state.errors.append(batch_error)
        _notify(state.on_error, batch_error)
        self.events.publish(
            ErrorEvent(
                document_id=state.document_id,
                stage=stage,
                error=error,
                recoverable=recoverable,
            )
        )

    def _record_stage(
        self,
        state: _RunState,
        stage: Stage,
        start_time: datetime,
        started: float,
        success: bool,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        state.stages.append(
            StageMetadata(
                name=stage.value,
                start_time=start_time,
                end_time=self._clock(),
                duration=self._timer() - started,
                success=success,
                details=dict(details or {}),
            )
        )

    async def _fetch(self, state: _RunState) -> Mapping[str, Any]:
        state.progress.start_stage(Stage.FETCHING)
        self._emit(state, Stage.FETCHING, "Fetching design file...")
        start_time, started = self._clock(), self._timer()

        try:
            file_data = await self.file_source.get_file(state.document_id)
        except FetchError:
            self._record_stage(state, Stage.FETCHING, start_time, started, success=False)
            raise
        except Exception as exc:
            self._record_stage(state, Stage.FETCHING, start_time, started, success=False)
            raise FetchError(state.document_id, str(exc)) from exc

        if not isinstance(file_data, Mapping):
            self._record_stage(state, Stage.FETCHING, start_time, started, success=False)
            raise FetchError(
                state.document_id, f"unexpected response type {type(file_data).__name__}"
            )

        file_name = str(file_data.get("name", ""))
        self._record_stage(
            state,
            Stage.FETCHING,
            start_time,
            started,
            success=True,
            details={"file_name": file_name, "node_count": count_nodes(file_data.get("document"))},
        )
        state.progress.complete_stage(Stage.FETCHING)
        self._emit(state, Stage.FETCHING, f"Fetched file: {file_name}")
        return file_data

    def _parse(self, state: _RunState, file_data: Mapping[str, Any]) -> ParsedDocument:
        state.progress.start_stage(Stage.PARSING)
        self._emit(state, Stage.PARSING, "Parsing document structure...")
        start_time, started = self._clock(), self._timer()

        try:
            document = self.parser.parse_document(file_data.get("document"), file_data.get("styles"))
        except ParseError:
            self._record_stage(state, Stage.PARSING, start_time, started, success=False)
            raise
        except Exception as exc:
            self._record_stage(state, Stage.PARSING, start_time, started, success=False)
            raise ParseError(str(exc)) from exc

        self._record_stage(
            state,
            Stage.PARSING,
            start_time,
            started,
            success=True,
            details={
                "pages": len(document.pages),
                "components": len(document.components),
                "complexity": document.metadata.complexity,
                "total_nodes": document.metadata.total_nodes,
                "warnings": len(document.metadata.warnings),
            },
        )
        state.progress.complete_stage(Stage.PARSING)
        self._emit(state, Stage.PARSING, f"Parsed {document.metadata.total_nodes} nodes")
        return document

    async def _images(self, state: _RunState, document: ParsedDocument) -> OptimizedImageMap | None:
        state.progress.start_stage(Stage.IMAGES)
        self._emit(state, Stage.IMAGES, "Processing images...")
        start_time, started = self._clock(), self._timer()
        options = state.options
        resolve_share = 0.5 if options.optimize_images else 1.0
        failed_batches = 0

        def on_batch_error(error: Exception) -> None:
            nonlocal failed_batches
            failed_batches += 1
            self._record_error(state, Stage.IMAGES.value, error, recoverable=True)

        def on_batches(done: int, total: int) -> None:
            state.progress.update(Stage.IMAGES, resolve_share * done / total)
            self._emit(state, Stage.IMAGES, f"Resolved image batch {done}/{total}")

        try:
            if self.image_resolver is None:
                raise RuntimeError("no image resolver configured")
            elements = extract_image_nodes(document)
            images: OptimizedImageMap = {}
            if elements:
                raw = await self.image_resolver.resolve_images(
                    state.document_id,
                    list(elements),
                    options.images,
                    elements=elements,
                    on_error=on_batch_error,
                    on_progress=on_batches,
                )
                if options.optimize_images:
                    images = await self.image_resolver.optimize(
                        raw, options.images, on_error=on_batch_error
                    )
                else:
                    images = {node_id: OptimizedImage.unoptimized(url) for node_id, url in raw.items()}
        except Exception as exc:
            self._record_error(state, Stage.IMAGES.value, exc, recoverable=True)
            self._record_stage(state, Stage.IMAGES, start_time, started, success=False)
            state.progress.complete_stage(Stage.IMAGES)
            self._emit(state, Stage.IMAGES, f"Image processing failed: {exc}")
            return None

        self._record_stage(
            state,
            Stage.IMAGES,
            start_time,
            started,
            success=True,
            details={"image_count": len(images), "failed": failed_batches},
        )
        state.progress.complete_stage(Stage.IMAGES)
        self._emit(state, Stage.IMAGES, f"Processed {len(images)} images")
        return images

    def _analyze(self, state: _RunState, document: ParsedDocument) -> list[ComponentAnalysis] | None:
        state.progress.start_stage(Stage.ANALYSIS)
        self._emit(state, Stage.ANALYSIS, "Analyzing components...")
        start_time, started = self._clock(), self._timer()

        try:
            analysis = analyze_components(document)
        except Exception as exc:
            error = exc if isinstance(exc, AnalysisError) else AnalysisError(str(exc))
            if error is not exc:
                error.__cause__ = exc
            self._record_error(state, Stage.ANALYSIS.value, error, recoverable=True)
            self._record_stage(state, Stage.ANALYSIS, start_time, started, success=False)
            state.progress.complete_stage(Stage.ANALYSIS)
            self._emit(state, Stage.ANALYSIS, f"Component analysis failed: {error}")
            return None

        self._record_stage(
            state,
            Stage.ANALYSIS,
            start_time,
            started,
            success=True,
            details={"component_count": len(analysis)},
        )
        state.progress.complete_stage(Stage.ANALYSIS)
        self._emit(state, Stage.ANALYSIS, f"Analyzed {len(analysis)} components")
        return analysis

    def _generate_css(self, state: _RunState, document: ParsedDocument) -> str | None:
        self._emit(state, Stage.CSS_GENERATION, "Generating CSS...")
        start_time, started = self._clock(), self._timer()
        options = state.options
        try:
            css = generate_document_css(
                document,
                CssOptions(
                    include_variables=options.css_include_variables,
                    minify=options.css_minify,
                    class_prefix=options.css_class_prefix,
                ),
            )
        except Exception as exc:
            self._record_error(state, Stage.CSS_GENERATION.value, exc, recoverable=True)
            self._record_stage(state, Stage.CSS_GENERATION, start_time, started, success=False)
            return None

        self._record_stage(
            state,
            Stage.CSS_GENERATION,
            start_time,
            started,
            success=True,
            details={"size": len(css)},
        )
        return css


def calculate_performance_metrics(
    stages: Sequence[StageMetadata],
    duration: float,
    cache_hits: int = 0,
) -> PerformanceMetrics:
    """
    Derive run metrics from stage metadata.

    ``api_calls`` counts fetch stages; ``processing_speed`` is nodes fetched
    per second of wall-clock time, 0 when no time elapsed.
    """
    api_calls = sum(1 for stage in stages if stage.name == Stage.FETCHING.value)
    nodes = sum(int(stage.details.get("node_count", 0)) for stage in stages)
    speed = nodes / duration if duration > 0 else 0.0
    return PerformanceMetrics(api_calls=api_calls, cache_hits=cache_hits, processing_speed=speed)
