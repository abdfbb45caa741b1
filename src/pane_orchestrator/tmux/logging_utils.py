"""Logging utilities for tmux operations."""

from typing import Any

from ..utils.logging import LogContext, get_logger

tmux_logger = get_logger("pane_orchestrator.tmux", LogContext.TMUX)


def log_session_operation(
    operation: str, session_name: str, status: str, context: dict[str, Any] | None = None
) -> None:
    """Log session operation."""
    message = f"Session {operation} {status} - {session_name}"
    if context:
        message += f" - {context}"

    if status == "error":
        tmux_logger.error(message, operation=operation, session_name=session_name)
    else:
        tmux_logger.info(message, operation=operation, session_name=session_name)


def log_layout_setup(session_name: str, agent_count: int, applied: int, total: int) -> None:
    """Log layout plan application."""
    tmux_logger.info(
        f"Layout applied - {session_name} (agents: {agent_count}, ops: {applied}/{total})",
        session_name=session_name,
        agent_count=agent_count,
        applied_ops=applied,
        total_ops=total,
    )


def log_unplaced_agents(session_name: str, agent_count: int, unplaced: int) -> None:
    """Log agents that the layout cap leaves without a pane."""
    tmux_logger.warning(
        f"Layout capped - {session_name}: {unplaced} of {agent_count} agents have no pane",
        session_name=session_name,
        agent_count=agent_count,
        unplaced=unplaced,
    )


def log_pane_assignment(session_name: str, agent_id: str, pane_id: str) -> None:
    """Log agent to pane binding."""
    tmux_logger.info(
        f"Assigned agent {agent_id} to pane %{pane_id} in session {session_name}",
        session_name=session_name,
        pane_id=pane_id,
        assigned_agent=agent_id,
    )


def log_session_cleanup(session_name: str, cleanup_type: str) -> None:
    """Log session cleanup."""
    tmux_logger.info(
        f"Session cleanup initiated - {session_name} (type: {cleanup_type})",
        session_name=session_name,
        cleanup_type=cleanup_type,
    )


def log_orphaned_sessions(orphaned: list[str]) -> None:
    """Log orphaned sessions detected."""
    if orphaned:
        tmux_logger.warning(
            f"Orphaned sessions detected - count: {len(orphaned)}, sessions: {orphaned}"
        )
    else:
        tmux_logger.debug("No orphaned sessions found")


def log_registry_fallback(error: Exception, registered: int) -> None:
    """Log that live session listing failed and the registry is returned as-is."""
    tmux_logger.warning(
        "tmux session listing failed, returning unfiltered registry",
        error=str(error),
        registered=registered,
    )
