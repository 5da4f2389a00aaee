"""Rich-based progress reporter adapter for design-file processing."""

from __future__ import annotations

import logging
import sys
import time
from typing import Sequence, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from ...application.dto.processing import ProcessFilesResult
from ...application.ports.progress_reporter import ProgressReporterPort
from ...application.services.events import ErrorEvent, PipelineEvent, ProgressEvent
from ...domain.types import Stage

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 10


class RichProgressReporterAdapter(ProgressReporterPort):
    """
    Renders pipeline events as one Rich progress bar per document.

    On a non-interactive stream (no TTY) events are written as log lines
    instead, at most one per document every ``log_interval`` seconds apart
    from stage errors and completion, which are always logged.

    Args:
        stream: Output stream (default: stdout when it is a TTY, else stderr)
        interactive: Force interactive or logging mode (default: detect TTY on the stream)
        log_interval: Minimum seconds between progress log lines per document
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        interactive: bool | None = None,
        log_interval: float = 1.0,
    ) -> None:
        if interactive is None:
            interactive = (stream or sys.stdout).isatty()
        self.is_interactive = interactive
        if stream is None:
            stream = sys.stdout if self.is_interactive else sys.stderr
        self.console = Console(file=stream)
        self.progress: Progress | None = None
        self._tasks: dict[str, TaskID] = {}
        self._last_logged: dict[str, float] = {}
        self._log_interval = log_interval

        if not self.is_interactive:
            logger.info("Non-interactive mode detected - using structured logging for progress")

    def start(self, document_ids: Sequence[str]) -> None:
        if not self.is_interactive:
            logger.info(f"Starting: {len(document_ids)} design files")
            return

        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TimeElapsedColumn(),
                console=self.console,
                expand=True,
            )
            self.progress.start()

        for document_id in document_ids:
            if document_id not in self._tasks:
                self._tasks[document_id] = self.progress.add_task(
                    f"[cyan]{document_id}[/cyan] - pending", total=100
                )

    def handle(self, event: PipelineEvent) -> None:
        if isinstance(event, ProgressEvent):
            self._handle_progress(event)
        elif isinstance(event, ErrorEvent):
            self._handle_error(event)

    def _handle_progress(self, event: ProgressEvent) -> None:
        task_id = self._tasks.get(event.document_id)
        if self.progress is not None and task_id is not None:
            self.progress.update(
                task_id,
                completed=event.percent,
                description=f"[cyan]{event.document_id}[/cyan] - {event.message}",
            )
            if event.stage is Stage.COMPLETE:
                self.progress.stop_task(task_id)
            return

        now = time.monotonic()
        last = self._last_logged.get(event.document_id)
        if event.stage is not Stage.COMPLETE and last is not None and now - last < self._log_interval:
            return
        self._last_logged[event.document_id] = now
        logger.info(
            f"{event.document_id}: {event.message} ({event.percent:.1f}%)",
            extra={"document_id": event.document_id, "stage": event.stage.value},
        )

    def _handle_error(self, event: ErrorEvent) -> None:
        task_id = self._tasks.get(event.document_id)
        if self.progress is not None and task_id is not None and not event.recoverable:
            self.progress.update(
                task_id,
                description=f"[red]{event.document_id}[/red] - Failed: {str(event.error)[:50]}",
            )
            self.progress.stop_task(task_id)
            return

        log = logger.warning if event.recoverable else logger.error
        log(
            f"{event.document_id}: {event.stage} failed: {event.error}",
            extra={"document_id": event.document_id, "stage": event.stage},
        )

    def finish(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
        self._tasks.clear()
        self._last_logged.clear()

    def display_summary(self, result: ProcessFilesResult) -> None:
        """Print a summary table with warnings and failures of a finished run."""
        summary_table = Table(title="Processing Summary", show_header=True, header_style="bold")
        summary_table.add_column("Metric", style="cyan")
        summary_table.add_column("Value", style="green")

        summary_table.add_row("Files Processed", str(len(result.processed)))
        summary_table.add_row("Files Failed", str(len(result.failed)))
        summary_table.add_row("Duration", f"{result.duration_seconds:.2f}s")
        if result.warnings:
            summary_table.add_row("Warnings", str(len(result.warnings)))

        self.console.print(summary_table)

        if result.warnings:
            warning_text = "\n".join(f"- {w}" for w in result.warnings[:SUMMARY_LIMIT])
            if len(result.warnings) > SUMMARY_LIMIT:
                warning_text += f"\n... and {len(result.warnings) - SUMMARY_LIMIT} more warnings"
            self.console.print(Panel(warning_text, title="Warnings", border_style="yellow"))

        if result.failed:
            errors = [f"{key}: {reason}" for key, reason in result.failed.items()]
            error_text = "\n".join(f"- {e}" for e in errors[:SUMMARY_LIMIT])
            if len(errors) > SUMMARY_LIMIT:
                error_text += f"\n... and {len(errors) - SUMMARY_LIMIT} more errors"
            self.console.print(Panel(error_text, title="Errors", border_style="red"))

        logger.info(
            f"Processing completed: {len(result.processed)} processed, "
            f"{len(result.failed)} failed, {result.duration_seconds:.2f}s"
        )
