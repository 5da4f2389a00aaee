"""Process a single design file through the pipeline."""

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

app = typer.Typer(help="Process a design file")
logger = logging.getLogger(__name__)


@app.command()
def run(
    file: str = typer.Argument(..., help="File key or share URL"),
    images: bool | None = typer.Option(None, "--images/--no-images", help="Resolve image URLs"),
    optimize: bool | None = typer.Option(None, "--optimize/--no-optimize", help="Download and optimize resolved images"),
    analyze: bool | None = typer.Option(None, "--analyze/--no-analyze", help="Analyze components"),
    css: bool | None = typer.Option(None, "--css/--no-css", help="Generate CSS"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON result to this path"),
    config_path: str | None = typer.Option(None, "--config", help="Path to figmaflow.toml configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """
    Fetch, parse and optionally enrich one design file.

    Examples:
        figmaflow process run AbC123xyz --images --css
        figmaflow process run "https://www.figma.com/file/AbC123xyz/Landing" -o out.json
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO, verbose=verbose, stream=sys.stderr)
    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    try:
        file_key = resolve_file_key(file)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    settings = load_settings(config_path)
    try:
        token = settings.api.token or require_api_key(context="process")
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    options = settings.to_processing_options(
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
            ProcessFilesRequest(file_keys=[file_key], options=options),
            progress_reporter=reporter,
            correlation_id=correlation_id,
        )
    )

    if result.failed:
        typer.echo(f"Error: {result.failed[file_key]}", err=True)
        raise typer.Exit(1)

    write_output(result.results[0], output)
    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)
