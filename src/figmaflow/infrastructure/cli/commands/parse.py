"""Parse a saved file response without contacting the API."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import typer

from figmaflow.domain.errors import ParseError
from figmaflow.domain.services.component_analyzer import analyze_components
from figmaflow.domain.services.css_generator import CssOptions, generate_document_css
from figmaflow.domain.services.document_parser import parse_document
from figmaflow.infrastructure.cli.runtime import write_output
from figmaflow.infrastructure.logging import configure_logging

app = typer.Typer(help="Parse a saved design file response")
logger = logging.getLogger(__name__)


@app.command()
def run(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file response or bare node tree"),
    analyze: bool = typer.Option(False, "--analyze", help="Include component analysis"),
    css: bool = typer.Option(False, "--css", help="Include generated CSS"),
    css_variables: bool = typer.Option(False, "--css-variables", help="Emit a :root block of design tokens"),
    minify: bool = typer.Option(False, "--minify", help="Minify generated CSS"),
    class_prefix: str = typer.Option("", "--class-prefix", help="Prefix for generated class names"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON result to this path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """
    Parse a file response saved from the REST API.

    Accepts either the full response (with ``document`` and ``styles``) or a
    bare node tree.

    Examples:
        figmaflow parse run design.json --css -o parsed.json
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING, verbose=verbose, stream=sys.stderr)

    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        typer.echo(f"Error reading {source}: {e}", err=True)
        raise typer.Exit(1)

    if isinstance(data, dict) and "document" in data:
        root, styles = data["document"], data.get("styles")
    else:
        root, styles = data, None

    try:
        document = parse_document(root, styles)
    except ParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    payload: dict[str, Any] = {"document": document.to_dict()}
    if analyze:
        payload["analysis"] = [analysis.to_dict() for analysis in analyze_components(document)]
    if css:
        payload["css"] = generate_document_css(
            document,
            CssOptions(include_variables=css_variables, minify=minify, class_prefix=class_prefix),
        )

    write_output(payload, output)
    for warning in document.metadata.warnings:
        typer.echo(f"Warning: {warning}", err=True)
