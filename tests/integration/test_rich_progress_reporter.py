import io
import logging

from figmaflow.application.dto.processing import ProcessFilesResult
from figmaflow.application.services.events import ErrorEvent, ProgressEvent
from figmaflow.domain.errors import FetchError
from figmaflow.domain.types import Stage
from figmaflow.infrastructure.adapters.rich_progress_reporter import RichProgressReporterAdapter


def _progress(stage: Stage, percent: float, message: str = "working") -> ProgressEvent:
    return ProgressEvent(document_id="KEY", stage=stage, percent=percent, message=message)


def test_non_interactive_mode_logs_throttled_progress(caplog):
    reporter = RichProgressReporterAdapter(stream=io.StringIO(), interactive=False, log_interval=60)
    caplog.set_level(logging.INFO, logger="figmaflow.infrastructure.adapters.rich_progress_reporter")

    reporter.start(["KEY"])
    reporter.handle(_progress(Stage.FETCHING, 5, "Fetching design file..."))
    reporter.handle(_progress(Stage.FETCHING, 20, "Fetched file: Landing"))
    reporter.handle(_progress(Stage.COMPLETE, 100, "Processing complete!"))
    reporter.finish()

    messages = [r.getMessage() for r in caplog.records]
    assert "Starting: 1 design files" in messages
    assert any("Fetching design file" in m for m in messages)
    assert not any("Fetched file" in m for m in messages)
    assert any("Processing complete!" in m and "100.0%" in m for m in messages)


def test_non_interactive_mode_logs_errors_by_severity(caplog):
    reporter = RichProgressReporterAdapter(stream=io.StringIO(), interactive=False)
    caplog.set_level(logging.INFO)

    reporter.handle(ErrorEvent(document_id="KEY", stage="css", error=RuntimeError("x"), recoverable=True))
    reporter.handle(
        ErrorEvent(document_id="KEY", stage="fetching", error=FetchError("KEY", "down"), recoverable=False)
    )

    levels = [r.levelno for r in caplog.records if "failed" in r.getMessage()]
    assert levels == [logging.WARNING, logging.ERROR]


def test_interactive_mode_renders_progress_bars():
    stream = io.StringIO()
    reporter = RichProgressReporterAdapter(stream=stream, interactive=True)

    reporter.start(["KEY", "OTHER"])
    assert reporter.progress is not None
    assert len(reporter.progress.tasks) == 2

    reporter.handle(_progress(Stage.PARSING, 35, "Parsing document structure..."))
    task = reporter.progress.tasks[0]
    assert task.completed == 35
    assert "Parsing" in task.description

    reporter.handle(
        ErrorEvent(document_id="OTHER", stage="fetching", error=FetchError("OTHER", "down"), recoverable=False)
    )
    assert "Failed" in reporter.progress.tasks[1].description

    reporter.finish()
    assert reporter.progress is None


def test_summary_lists_warnings_and_failures():
    stream = io.StringIO()
    reporter = RichProgressReporterAdapter(stream=stream, interactive=True)
    result = ProcessFilesResult(
        processed=["A"],
        failed={"B": "Failed to fetch document 'B': down"},
        duration_seconds=1.5,
        warnings=[f"A: warning {i}" for i in range(12)],
    )

    reporter.display_summary(result)

    output = stream.getvalue()
    assert "Processing Summary" in output
    assert "Files Failed" in output
    assert "and 2 more warnings" in output
    assert "B: Failed to fetch" in output
