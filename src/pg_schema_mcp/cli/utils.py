"""CLI utilities for output formatting and common functionality."""

import json
import sys
from collections.abc import Callable
from functools import wraps
from typing import Any

import click

from ..config.loader import ServerConfig, load_config
from ..database.migrations import MigrationStore
from ..server.context import ServerContext
from ..utils.logging import SchemaServerError


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator for reporting errors and exiting non-zero."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SchemaServerError as e:
            handle_error(e.message)
        except FileNotFoundError as e:
            handle_error(str(e))

    return wrapper


def handle_error(message: str, exit_code: int = 1) -> None:
    """Handle errors with consistent formatting."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(exit_code)


def success_message(message: str, ctx: click.Context | None = None) -> None:
    """Display a success message unless quiet mode is enabled."""
    if ctx is not None and is_quiet(ctx):
        return
    click.echo(click.style(f"✓ {message}", fg="green"))


def output_json(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2, default=str))


def output_table(headers: list[str], rows: list[list[str]]) -> None:
    """Output data as a formatted table."""
    if not rows:
        click.echo("No data to display")
        return

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(str(cell)))

    header_row = " | ".join(
        h.ljust(w) for h, w in zip(headers, col_widths, strict=False)
    )
    click.echo(header_row)
    click.echo("-" * len(header_row))

    for row in rows:
        click.echo(
            " | ".join(
                str(cell).ljust(w) for cell, w in zip(row, col_widths, strict=False)
            )
        )


def verbose_echo(ctx: click.Context, message: str) -> None:
    """Echo message only if verbose mode is enabled."""
    if ctx.obj and ctx.obj.get("verbose"):
        click.echo(click.style(f"[VERBOSE] {message}", fg="blue"), err=True)


def quiet_echo(ctx: click.Context, message: str) -> None:
    """Echo message only if not in quiet mode."""
    if not is_quiet(ctx):
        click.echo(message)


def is_quiet(ctx: click.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("quiet"))


def wants_json(ctx: click.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json"))


def load_cli_config(ctx: click.Context, **overrides: Any) -> ServerConfig:
    """Load configuration with the global options and ``overrides`` applied."""
    obj = ctx.obj or {}
    cli_overrides = dict(obj.get("cli_overrides") or {})
    cli_overrides.update({k: v for k, v in overrides.items() if v is not None})
    return load_config(obj.get("config"), obj.get("profile"), cli_overrides)


def build_context(ctx: click.Context, **overrides: Any) -> ServerContext:
    """Build the server context for a one-shot CLI command."""
    config = load_cli_config(ctx, **overrides)
    verbose_echo(ctx, f"Migrations directory: {config.migrations_path}")
    return ServerContext.from_config(config)


def build_store(ctx: click.Context) -> MigrationStore:
    """Open the migration history without connecting to the database."""
    config = load_cli_config(ctx)
    verbose_echo(ctx, f"Migrations directory: {config.migrations_path}")
    return MigrationStore(config.migrations_path, config.metadata_path)
