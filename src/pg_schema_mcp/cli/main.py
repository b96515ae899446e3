"""Main CLI entry point for pg-schema-mcp."""

from pathlib import Path

import click

from .. import __version__
from ..utils.logging import setup_logging
from .config import config
from .migrations import migrations
from .serve import serve


@click.group()
@click.version_option(version=__version__, prog_name="pg-schema-mcp")
@click.option("--config", "-c", help="Configuration file path")
@click.option("--profile", "-p", help="Configuration profile to use")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--working-dir",
    type=click.Path(file_okay=False),
    help="Directory holding the migrations folder",
)
@click.option("--log-level", help="Override log_level setting")
@click.pass_context
def main(
    ctx: click.Context,
    config: str | None,
    profile: str | None,
    verbose: bool,
    quiet: bool,
    json: bool,
    working_dir: str | None,
    log_level: str | None,
) -> None:
    """PostgreSQL schema tool server with replayable migrations.

    Every schema change made through the tool server is recorded under
    ./migrations as a checksummed SQL file and can be re-applied or
    reverted later.

    Use command groups to organize functionality:
    - serve: Run the tool server on stdio
    - migrations: Inspect, apply and revert recorded migrations
    - config: Inspect configuration settings
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet options")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["profile"] = profile
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json"] = json
    ctx.obj["cli_overrides"] = {
        k: v
        for k, v in {
            "working_dir": str(Path(working_dir).resolve()) if working_dir else None,
            "log_level": log_level,
        }.items()
        if v is not None
    }

    # One-shot commands log plainly; serve reconfigures from its config
    if ctx.invoked_subcommand != "serve":
        setup_logging(
            log_level="DEBUG" if verbose else (log_level or "WARNING"),
            enable_structured=False,
        )


main.add_command(serve)
main.add_command(migrations)
main.add_command(config)


if __name__ == "__main__":
    main()
