"""Process many design files concurrently."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from pathlib import Path

import typer

from figmaflow.application.dto.processing import ProcessFilesRequest
from figmaflow.domain.services.figma_url import resolve_file_key
from figmaflow.infrastructure.adapters.rich_progress_reporter import RichProgressReporterAdapter
from figmaflow.infrastructure.cli.runtime import load_settings, run_processing, write_output
from figmaflow.infrastructure.config.environment import require_api_key
from figmaflow.infrastructure.logging import configure_logging, set_correlation_id

app = typer.Typer(help="Process several design files")
logger = logging.getLogger(__name__)


def _read_keys(files: list[str], keys_file: Path | None) -> list[str]:
    values = list(files)
    if keys_file is not None:
        for line in keys_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                values.append(line)
    keys: list[str] = []
    for value in values:
        key = resolve_file_key(value)
        if key not in keys:
            keys.append(key)
    return keys


@app.command()
def run(
    files: list[str] | None = typer.Argument(None, help="File keys or share URLs"),
    keys_file: Path | None = typer.Option(None, "--from-file", help="Text file with one key or URL per line"),
    max_concurrency: int | None = typer.Option(None, "--max-concurrency", "-c", min=1, help="Files processed at once"),
    images: bool | None = typer.Option(None, "--images/--no-images", help="Resolve image URLs"),
    optimize: bool | None = typer.Option(None, "--optimize/--no-optimize", help="Download and optimize resolved images"),
    analyze: bool | None = typer.Option(None, "--analyze/--no-analyze", help="Analyze components"),
    css: bool | None = typer.Option(None, "--css/--no-css", help="Generate CSS"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON results to this path"),
    config_path: str | None = typer.Option(None, "--config", help="Path to figmaflow.toml configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """
    Process several design files in waves of ``--max-concurrency``.

    A failed file does not stop the others; failures are listed in the
    summary and the command exits with status 1 if every file failed.

    Examples:
        figmaflow batch run KEY1 KEY2 KEY3 -c 2 --analyze
        figmaflow batch run --from-file keys.txt -o results.json
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO, verbose=verbose, stream=sys.stderr)
    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    try:
        keys = _read_keys(files or [], keys_file)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if not keys:
        typer.echo("Error: no file keys given", err=True)
        raise typer.Exit(1)

    settings = load_settings(config_path)
    try:
        token = settings.api.token or require_api_key(context="batch")
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    options = settings.to_processing_options(
        max_concurrency=max_concurrency,
        include_images=images,
        optimize_images=optimize,
        analyze_components=analyze,
        generate_css=css,
    )
    reporter = RichProgressReporterAdapter(stream=sys.stderr)
    result = asyncio.run(
        run_processing(
            settings,
            token,
            ProcessFilesRequest(file_keys=keys, options=options),
            progress_reporter=reporter,
            correlation_id=correlation_id,
        )
    )

    write_output(result.model_dump(), output)
    reporter.display_summary(result)
    if not result.processed:
        raise typer.Exit(1)
