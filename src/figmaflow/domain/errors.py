"""Domain errors for design-file processing."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models.processing import StageMetadata


class PipelineStageError(Exception):
    """
    Base for errors that stop a pipeline run.

    Attributes:
        stage: Stage name where the run stopped
        stages: StageMetadata collected before the failure (filled by the pipeline)
    """

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.stages: list[StageMetadata] = []
        super().__init__(message)


class FetchError(PipelineStageError):
    """
    Raised when the upstream file-fetch collaborator does not return a document.

    Attributes:
        document_id: Design file key that could not be fetched
        reason: Underlying failure description
    """

    def __init__(self, document_id: str, reason: str) -> None:
        self.document_id = document_id
        self.reason = reason
        super().__init__("fetching", f"Failed to fetch document '{document_id}': {reason}")


class ParseError(PipelineStageError):
    """
    Raised when the root node itself cannot be read.

    Individual malformed nodes never raise; they are recorded as warnings.

    Attributes:
        reason: Why the root is unreadable
        node_id: Offending node id, when known
    """

    def __init__(self, reason: str, node_id: str | None = None) -> None:
        self.reason = reason
        self.node_id = node_id
        location = f" (node '{node_id}')" if node_id else ""
        super().__init__("parsing", f"Cannot parse document{location}: {reason}")


class PipelineCancelledError(PipelineStageError):
    """Raised at a stage boundary once cancellation has been requested."""

    def __init__(self, stage: str) -> None:
        super().__init__(stage, f"Pipeline cancelled before stage '{stage}'")


class ImageBatchError(Exception):
    """
    Raised when one batch of image ids cannot be resolved (recoverable).

    Attributes:
        document_id: Design file key
        batch_index: Zero-based index of the failed batch
        node_ids: Ids in the failed batch
        reason: Underlying failure description
    """

    def __init__(
        self,
        document_id: str,
        batch_index: int,
        node_ids: Sequence[str],
        reason: str,
    ) -> None:
        self.document_id = document_id
        self.batch_index = batch_index
        self.node_ids = list(node_ids)
        self.reason = reason
        super().__init__(
            f"Image batch {batch_index + 1} ({len(self.node_ids)} ids) failed "
            f"for document '{document_id}': {reason}"
        )


class OptimizationError(Exception):
    """
    Raised when a single image cannot be downloaded or decoded (recoverable, per image).

    Attributes:
        url: Image URL
        reason: Underlying failure description
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to optimize image {url}: {reason}")


class AnalysisError(Exception):
    """Raised when component analysis fails (recoverable)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Component analysis failed: {reason}")


class FigmaAPIErrorType(str, Enum):
    """Failure categories reported by the design-tool REST API."""

    AUTHENTICATION_ERROR = "auth_error"
    RATE_LIMIT_ERROR = "rate_limit"
    FILE_NOT_FOUND = "file_not_found"
    NETWORK_ERROR = "network_error"
    PARSING_ERROR = "parsing_error"
    UNKNOWN_ERROR = "unknown_error"


class FigmaAPIError(Exception):
    """
    Raised by the REST adapter for any non-success response.

    Attributes:
        error_type: Failure category
        status_code: HTTP status (None for transport failures)
        retry_after: Seconds to wait before retrying (429 only)
    """

    def __init__(
        self,
        error_type: FigmaAPIErrorType,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.error_type = error_type
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)
