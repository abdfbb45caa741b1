"""
Agent session service.

Single entry point for the task-dispatch layer: wires the lifecycle manager,
pane assigner and monitor around one registry and one tmux client.
"""

from collections.abc import Iterable
from typing import Any

from ..config.loader import OrchestratorConfig
from ..utils.logging import LogContext, get_logger
from .assigner import PaneAssigner
from .client import LibtmuxClient, MultiplexerClient
from .layout import LayoutPlanner
from .lifecycle import CleanupResult, SessionLifecycleManager
from .monitor import SessionMonitor, SessionReport
from .registry import Pane, Session, SessionRegistry

logger = get_logger(__name__, LogContext.SESSION)


class AgentSessionService:
    """Creates, lays out, populates, monitors and tears down agent sessions."""

    def __init__(
        self,
        client: MultiplexerClient | None = None,
        config: OrchestratorConfig | None = None,
        registry: SessionRegistry | None = None,
    ):
        """Initialize the service.

        Args:
            client: tmux client, a :class:`LibtmuxClient` built from config if None
            config: Settings, defaults if None
            registry: Session registry, a fresh one if None
        """
        self.config = config or OrchestratorConfig()
        self.client = client or LibtmuxClient(
            socket_name=self.config.tmux_socket_name,
            timeout=self.config.command_timeout,
        )
        self.registry = registry if registry is not None else SessionRegistry()

        self.lifecycle = SessionLifecycleManager(
            self.client,
            self.registry,
            planner=LayoutPlanner(self.config.max_layout_agents),
            session_prefix=self.config.session_prefix,
            columns=self.config.default_columns,
            rows=self.config.default_rows,
        )
        self.assigner = PaneAssigner(
            self.client, self.registry, self.config.agent_path_template
        )
        self.monitor = SessionMonitor(
            self.client, self.registry, self.config.session_prefix
        )
        logger.info("Agent session service initialized", prefix=self.config.session_prefix)

    async def create_agent_session(self, agent_ids: Iterable[str]) -> str:
        return await self.lifecycle.create_session(agent_ids)

    async def setup_multi_pane_environment(self, session_id: str, agent_count: int) -> None:
        await self.lifecycle.setup_layout(session_id, agent_count)

    async def get_pane_info(self, session_id: str) -> list[Pane]:
        return await self.monitor.get_pane_info(session_id)

    async def assign_agent_to_pane(self, session_id: str, agent_id: str, pane_id: str) -> None:
        await self.assigner.assign(session_id, agent_id, pane_id)

    async def monitor_session(self, session_id: str) -> SessionReport:
        return await self.monitor.monitor_session(session_id)

    async def get_active_sessions(self) -> list[Session]:
        return await self.monitor.get_active_sessions()

    async def cleanup_sessions(self) -> CleanupResult:
        return await self.lifecycle.cleanup_sessions()

    async def terminate_session(self, session_id: str) -> None:
        await self.lifecycle.terminate_session(session_id)

    async def find_orphaned_sessions(self) -> list[str]:
        return await self.monitor.find_orphaned_sessions()

    async def kill_orphaned_sessions(self) -> CleanupResult:
        """Kill owned sessions left behind by other processes."""
        orphaned = await self.monitor.find_orphaned_sessions()
        return await self.lifecycle.kill_untracked_sessions(orphaned)

    async def capture_pane(self, session_id: str, pane_id: str, lines: int = 50) -> str:
        return await self.monitor.capture_pane(session_id, pane_id, lines)

    async def launch_agents(self, agent_ids: Iterable[str]) -> str:
        """Create a session, lay it out and bind each agent to a pane.

        Failures after creation propagate and leave the session registered
        for inspection or cleanup.

        Returns:
            Internal session id
        """
        agent_ids = list(agent_ids)
        session_id = await self.create_agent_session(agent_ids)
        await self.populate_session(session_id, agent_ids)
        return session_id

    async def populate_session(self, session_id: str, agent_ids: list[str]) -> None:
        """Lay out an existing session and bind agents to its panes.

        Agents are bound in pane order. Agents beyond the available panes
        stay unassigned.
        """
        await self.setup_multi_pane_environment(session_id, len(agent_ids))

        panes = await self.get_pane_info(session_id)
        for agent_id, pane in zip(agent_ids, panes):
            await self.assign_agent_to_pane(session_id, agent_id, pane.id)

        if len(agent_ids) > len(panes):
            logger.warning(
                f"{len(agent_ids) - len(panes)} agents left without a pane",
                session_id=session_id,
            )

    def get_session_stats(self) -> dict[str, Any]:
        sessions = self.registry.snapshot()
        return {
            "active_sessions": len(sessions),
            "sessions": [
                {
                    "id": session.id,
                    "name": session.name,
                    "created_at": session.created_at.isoformat(),
                    "window_count": len(session.windows),
                    "state": session.state.value,
                }
                for session in sessions
            ],
        }


# Global session service instance
_session_service: AgentSessionService | None = None


def get_session_service(config: OrchestratorConfig | None = None) -> AgentSessionService:
    """Get the global session service instance.

    ``config`` only applies when the instance is first created.
    """
    global _session_service
    if _session_service is None:
        _session_service = AgentSessionService(config=config)
    return _session_service


async def cleanup_session_service() -> CleanupResult | None:
    """Clean up all sessions of the global service and drop it."""
    global _session_service
    if _session_service is None:
        return None
    result = await _session_service.cleanup_sessions()
    _session_service = None
    return result
