"""Main CLI entry point for pane-orchestrator."""

import click

from .. import __version__
from .config import config
from .sessions import sessions


@click.group()
@click.version_option(version=__version__, prog_name="pane-orchestrator")
@click.option("--config", "-c", help="Configuration file path")
@click.option("--profile", "-p", help="Configuration profile to use")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
# Configuration override flags
@click.option("--session-prefix", help="Override session_prefix setting")
@click.option("--max-layout-agents", type=int, help="Override max_layout_agents setting")
@click.option("--command-timeout", type=float, help="Override command_timeout setting")
@click.option("--tmux-socket-name", help="Override tmux_socket_name setting")
@click.option("--log-level", help="Override log_level setting")
@click.pass_context
def main(
    ctx: click.Context,
    config: str | None,
    profile: str | None,
    verbose: bool,
    quiet: bool,
    json: bool,
    session_prefix: str | None,
    max_layout_agents: int | None,
    command_timeout: float | None,
    tmux_socket_name: str | None,
    log_level: str | None,
) -> None:
    """Pane Orchestrator - run teams of agents side by side in tmux.

    Use command groups to organize functionality:
    - sessions: Plan, launch, list and clean up agent sessions
    - config: Manage configuration settings
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet options")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["profile"] = profile
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json"] = json

    overrides = {
        "session_prefix": session_prefix,
        "max_layout_agents": max_layout_agents,
        "command_timeout": command_timeout,
        "tmux_socket_name": tmux_socket_name,
        "log_level": log_level,
    }
    ctx.obj["cli_overrides"] = {k: v for k, v in overrides.items() if v is not None}


main.add_command(sessions)
main.add_command(config)


if __name__ == "__main__":
    main()
