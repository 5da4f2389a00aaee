"""Port interface for rendering pipeline progress to a user."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..services.events import PipelineEvent


class ProgressReporterPort(ABC):
    """Port for reporting progress of one or more document pipelines."""

    @abstractmethod
    def start(self, document_ids: Sequence[str]) -> None:
        """
        Begin reporting for a set of documents.

        Args:
            document_ids: Design file keys about to be processed
        """
        pass

    @abstractmethod
    def handle(self, event: PipelineEvent) -> None:
        """
        Render one progress or error event.

        Suitable as a :class:`PipelineEventBus` subscriber.
        """
        pass

    @abstractmethod
    def finish(self) -> None:
        """Stop reporting and release any display resources."""
        pass
