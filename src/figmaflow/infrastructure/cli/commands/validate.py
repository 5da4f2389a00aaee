"""Validate configuration and API connectivity."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

from figmaflow.infrastructure.adapters.figma_api_client import FigmaApiClient
from figmaflow.infrastructure.cli.runtime import build_client, load_settings
from figmaflow.infrastructure.config.environment import require_api_key

app = typer.Typer(help="Validate configuration and connectivity")
console = Console()
logger = logging.getLogger(__name__)


async def _check_connection(client: FigmaApiClient) -> bool:
    async with client:
        return await client.test_connection()


@app.command()
def run(
    config_path: str | None = typer.Option(None, "--config", help="Path to figmaflow.toml configuration file"),
) -> None:
    """
    Check the configuration file, access token and API reachability.

    Examples:
        figmaflow validate run
    """
    settings = load_settings(config_path)

    table = Table(title="Validation", show_header=True, header_style="bold")
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_row("API base URL", settings.api.base_url)
    table.add_row("Rate limit", f"{settings.api.rate_limit_per_minute}/min")
    table.add_row("Image batch size", str(settings.images.batch_size))

    try:
        token = settings.api.token or require_api_key(context="validate")
    except ValueError:
        table.add_row("Access token", "[red]missing[/red]")
        console.print(table)
        raise typer.Exit(1)
    table.add_row("Access token", "[green]present[/green]")

    connected = asyncio.run(_check_connection(build_client(settings, token)))
    table.add_row("API connection", "[green]ok[/green]" if connected else "[red]failed[/red]")
    console.print(table)
    if not connected:
        raise typer.Exit(1)
