"""Configuration management commands."""

from typing import Any

import click
from pydantic import ValidationError

from ..config.loader import (
    CONFIG_SEARCH_PATHS,
    ENV_PREFIX,
    OrchestratorConfig,
    load_config,
    save_config,
)
from ..utils.logging import ConfigurationError
from .utils import CliError, error_handler, format_output


def _load(ctx: click.Context) -> OrchestratorConfig:
    obj = ctx.obj or {}
    try:
        return load_config(obj.get("config"), obj.get("profile"), obj.get("cli_overrides"))
    except (ConfigurationError, FileNotFoundError) as e:
        raise CliError(f"Failed to load configuration: {e}")


@click.group()
def config() -> None:
    """Manage configuration settings."""
    pass


@config.command()
@click.pass_context
@error_handler
def show(ctx: click.Context) -> None:
    """Show current configuration."""
    format_output(ctx, {"configuration": _load(ctx).model_dump()})


@config.command()
@click.argument("key")
@click.pass_context
@error_handler
def get(ctx: click.Context, key: str) -> None:
    """Get a configuration value."""
    config_obj = _load(ctx)
    if key not in OrchestratorConfig.model_fields:
        raise CliError(f"Unknown configuration key: {key}")
    format_output(ctx, {key: getattr(config_obj, key)})


@config.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
@error_handler
def set_value(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value."""
    if key not in OrchestratorConfig.model_fields:
        raise CliError(f"Unknown configuration key: {key}")

    config_obj = _load(ctx)
    config_dict: dict[str, Any] = config_obj.model_dump()
    # "none"/"null" clears optional settings; pydantic converts the rest
    config_dict[key] = None if value.lower() in ("none", "null") else value

    try:
        config_obj = OrchestratorConfig(**config_dict)
    except ValidationError as e:
        raise CliError(f"Invalid value for {key}: {e.errors()[0]['msg']}")

    saved_path = save_config(config_obj, ctx.obj.get("config") if ctx.obj else None)

    if not (ctx.obj and ctx.obj.get("quiet")):
        click.echo(f"Configuration updated: {key}={getattr(config_obj, key)}")
        click.echo(f"Saved to: {saved_path}")


@config.command()
@click.pass_context
@error_handler
def validate(ctx: click.Context) -> None:
    """Validate current configuration."""
    _load(ctx)
    if not (ctx.obj and ctx.obj.get("quiet")):
        click.echo("Configuration is valid")


@config.command()
@click.option("--path", help="Custom path for config file")
@click.pass_context
@error_handler
def init(ctx: click.Context, path: str | None) -> None:
    """Initialize configuration file with defaults."""
    saved_path = save_config(OrchestratorConfig(), path)
    if not (ctx.obj and ctx.obj.get("quiet")):
        click.echo(f"Configuration initialized at: {saved_path}")


@config.command()
def locations() -> None:
    """Show configuration file search locations."""
    click.echo("Configuration file search locations (in order):")
    for i, location in enumerate(CONFIG_SEARCH_PATHS, 1):
        click.echo(f"  {i}. {location}")

    click.echo(f"\nEnvironment variables ({ENV_PREFIX}*):")
    for field_name in OrchestratorConfig.model_fields:
        click.echo(f"  {ENV_PREFIX}{field_name.upper()}")
