"""CLI commands for agent session management."""

import asyncio
from pathlib import Path

import click

from ..config.loader import OrchestratorConfig, load_config
from ..tmux import AgentSessionService, LayoutPlanner, OpKind, get_session_service
from ..utils.logging import (
    ConfigurationError,
    PaneOrchestratorException,
    setup_logging,
)
from .utils import CliError, error_handler, output_json, success_message, wants_json


def _load_config(ctx: click.Context) -> OrchestratorConfig:
    obj = ctx.obj or {}
    try:
        config = load_config(
            obj.get("config"), obj.get("profile"), obj.get("cli_overrides")
        )
    except (ConfigurationError, FileNotFoundError) as e:
        raise CliError(f"Failed to load configuration: {e}")

    setup_logging(
        log_level="DEBUG" if obj.get("verbose") else config.log_level,
        log_file=Path(config.log_file).expanduser() if config.log_file else None,
        enable_structured=config.structured_logs,
        enable_console=bool(obj.get("verbose")),
    )
    return config


def _service(ctx: click.Context) -> AgentSessionService:
    return get_session_service(_load_config(ctx))


@click.group()
def sessions() -> None:
    """Manage tmux sessions hosting teams of agents.

    Each team gets its own tmux session, laid out as a pane grid for up to
    six agents or as one window per agent for larger teams.
    """
    pass


@sessions.command()
@click.argument("agent_count", type=int)
@click.pass_context
@error_handler
def plan(ctx: click.Context, agent_count: int) -> None:
    """Show the layout operations for AGENT_COUNT agents."""
    config = _load_config(ctx)
    planner = LayoutPlanner(config.max_layout_agents)
    ops = planner.plan(agent_count)

    result = {
        "agent_count": agent_count,
        "operations": [
            {
                "kind": op.kind.value,
                "target": op.target or "root",
                "direction": op.direction.value if op.direction else None,
                "window_name": op.window_name,
            }
            for op in ops
        ],
        "unplaced_agents": planner.unplaced_agents(agent_count),
    }

    if wants_json(ctx):
        output_json(result)
        return

    if not ops:
        click.echo("No layout operations")
        return

    for i, op in enumerate(ops, 1):
        if op.kind is OpKind.SPLIT:
            click.echo(f"{i}. split {op.target or 'root'} ({op.direction.value})")
        else:
            click.echo(f"{i}. new window {op.window_name}")
    if result["unplaced_agents"]:
        click.echo(f"Agents without a pane: {result['unplaced_agents']}")


@sessions.command()
@click.argument("agent_ids", nargs=-1, required=True)
@click.option(
    "--cleanup-on-error",
    is_flag=True,
    help="Kill the session if layout or agent placement fails",
)
@click.pass_context
@error_handler
def launch(ctx: click.Context, agent_ids: tuple[str, ...], cleanup_on_error: bool) -> None:
    """Create a session for AGENT_IDS and place each agent in a pane."""
    service = _service(ctx)

    async def _launch() -> dict:
        session_id = await service.create_agent_session(agent_ids)
        try:
            await service.populate_session(session_id, list(agent_ids))
        except PaneOrchestratorException:
            if cleanup_on_error:
                await service.terminate_session(session_id)
            raise
        session = service.registry.get(session_id)
        return {
            "session_id": session_id,
            "session_name": session.name,
            "state": session.state.value,
            "assignments": dict(session.assignments),
        }

    try:
        result = asyncio.run(_launch())
    except PaneOrchestratorException as e:
        raise CliError(f"Failed to launch agents: {e}")

    if wants_json(ctx):
        output_json(result)
    else:
        success_message(f"Launched {len(agent_ids)} agent(s) in '{result['session_name']}'")
        for pane_id, agent_id in result["assignments"].items():
            click.echo(f"  %{pane_id}: {agent_id}")
        click.echo(f"Attach with: tmux attach -t {result['session_name']}")


@sessions.command(name="list")
@click.pass_context
@error_handler
def list_sessions(ctx: click.Context) -> None:
    """List live tmux sessions owned by pane-orchestrator."""
    service = _service(ctx)

    try:
        names = asyncio.run(service.monitor.list_owned_session_names())
    except PaneOrchestratorException as e:
        raise CliError(f"Error listing sessions: {e}")

    if wants_json(ctx):
        output_json({"sessions": names})
    elif not names:
        click.echo("No agent sessions found")
    else:
        for name in names:
            click.echo(f"● {name}")


@sessions.command(name="cleanup-orphans")
@click.pass_context
@error_handler
def cleanup_orphans(ctx: click.Context) -> None:
    """Kill owned sessions that no running orchestrator tracks."""
    service = _service(ctx)

    try:
        result = asyncio.run(service.kill_orphaned_sessions())
    except PaneOrchestratorException as e:
        raise CliError(f"Error during cleanup: {e}")

    if wants_json(ctx):
        output_json(result.to_dict())
        return

    if result.cleaned_session_names:
        success_message(f"Cleaned up {len(result.cleaned_session_names)} session(s)")
        for name in result.cleaned_session_names:
            click.echo(f"  {name}")
    else:
        click.echo("No sessions to clean up")
    for error in result.errors:
        click.echo(click.style(error, fg="yellow"), err=True)
    if result.errors:
        raise CliError(f"{len(result.errors)} session(s) could not be cleaned up")
