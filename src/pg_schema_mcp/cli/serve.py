"""Tool server command."""

import asyncio
from pathlib import Path

import click

from ..server.app import run_server
from ..utils.logging import setup_logging
from .utils import build_context, error_handler


@click.command()
@click.argument("database_url", required=False)
@click.pass_context
@error_handler
def serve(ctx: click.Context, database_url: str | None) -> None:
    """Run the tool server on stdio against DATABASE_URL."""
    context = build_context(ctx, database_url=database_url)
    config = context.config

    setup_logging(
        log_level=config.log_level,
        log_file=Path(config.log_file) if config.log_file else None,
        enable_structured=config.structured_logs,
    )

    try:
        asyncio.run(run_server(context))
    except KeyboardInterrupt:
        click.echo("Shutting down tool server...", err=True)
