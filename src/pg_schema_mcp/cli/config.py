"""Configuration commands."""

import click

from .utils import error_handler, load_cli_config, output_json, wants_json


@click.group()
def config() -> None:
    """Inspect configuration settings."""
    pass


@config.command()
@click.pass_context
@error_handler
def show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config_obj = load_cli_config(ctx)
    data = config_obj.model_dump()
    data["migrations_path"] = str(config_obj.migrations_path)
    data["metadata_path"] = str(config_obj.metadata_path)

    if wants_json(ctx):
        output_json({"configuration": data})
        return

    for key, value in data.items():
        click.echo(f"{key}: {value}")
