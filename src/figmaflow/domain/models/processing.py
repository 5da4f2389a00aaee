"""Audit trail and result bundle for a pipeline run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .analysis import ComponentAnalysis
from .document import ParsedDocument
from .image import OptimizedImage


@dataclass
class StageMetadata:
    """
    Timing and outcome of one executed stage.

    Fields:
        name: Stage name (fetching, parsing, images, analysis, css-generation)
        start_time: Stage start (wall clock)
        end_time: Stage end (wall clock)
        duration: Elapsed seconds
        success: False when the stage failed (recoverably or fatally)
        details: Stage-specific counters (node_count, image_count, ...)
    """

    name: str
    start_time: datetime
    end_time: datetime
    duration: float
    success: bool
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "success": self.success,
            "details": dict(self.details),
        }


@dataclass
class BatchError:
    """A failure recorded during a run; ``recoverable`` failures never stop it."""

    stage: str
    error: BaseException
    recoverable: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "error": str(self.error),
            "error_type": type(self.error).__name__,
            "recoverable": self.recoverable,
        }


@dataclass
class PerformanceMetrics:
    api_calls: int = 0
    cache_hits: int = 0
    processing_speed: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_calls": self.api_calls,
            "cache_hits": self.cache_hits,
            "processing_speed": self.processing_speed,
        }


@dataclass
class ProcessingMetadata:
    start_time: datetime
    end_time: datetime
    duration: float
    stages: list[StageMetadata]
    errors: list[BatchError]
    performance: PerformanceMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "stages": [s.to_dict() for s in self.stages],
            "errors": [e.to_dict() for e in self.errors],
            "performance": self.performance.to_dict(),
        }


@dataclass
class BatchProcessingResult:
    """
    Output of one document pipeline run.

    ``images``, ``analysis`` and ``css`` are None when the stage was not
    requested or failed recoverably; a failure always leaves an entry in
    ``metadata.errors``.
    """

    document: ParsedDocument
    metadata: ProcessingMetadata
    images: dict[str, OptimizedImage] | None = None
    analysis: list[ComponentAnalysis] | None = None
    css: str | None = None
    file_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "document": self.document.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
        if self.images is not None:
            data["images"] = {node_id: img.to_dict() for node_id, img in self.images.items()}
        if self.analysis is not None:
            data["analysis"] = [a.to_dict() for a in self.analysis]
        if self.file_key is not None:
            data["file_key"] = self.file_key
        if self.css is not None:
            data["css"] = self.css
        return data
