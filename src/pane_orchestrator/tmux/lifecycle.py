"""
Session lifecycle management.

Creates tmux sessions, applies layout plans against them one operation at a
time, and terminates them. A layout that fails partway is left in place:
the session keeps the panes that were created and remembers where the plan
stopped so a later call can resume from there.
"""

import asyncio
import itertools
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..utils.logging import (
    LogContext,
    MultiplexerCommandFailed,
    PartialLayoutFailure,
    SessionNotFound,
    audit_log,
    get_logger,
)
from .client import MultiplexerClient, strip_pane_sigil
from .layout import LayoutOp, LayoutPlanner, OpKind
from .logging_utils import (
    log_layout_setup,
    log_session_cleanup,
    log_session_operation,
    log_unplaced_agents,
)
from .registry import Pane, Session, SessionRegistry, SessionState, Window

logger = get_logger(__name__, LogContext.SESSION)

DEFAULT_SESSION_PREFIX = "ai-agents-miyabi"
DEFAULT_COLUMNS = 120
DEFAULT_ROWS = 30
ROOT_WINDOW_ID = "0"


@dataclass
class CleanupResult:
    """Outcome of a best-effort bulk cleanup."""

    cleaned_session_names: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cleaned_session_names": list(self.cleaned_session_names),
            "errors": list(self.errors),
        }


class SessionLifecycleManager:
    """Owns creation, layout and termination of orchestrated sessions."""

    def __init__(
        self,
        client: MultiplexerClient,
        registry: SessionRegistry,
        planner: LayoutPlanner | None = None,
        session_prefix: str = DEFAULT_SESSION_PREFIX,
        columns: int = DEFAULT_COLUMNS,
        rows: int = DEFAULT_ROWS,
    ):
        """Initialize the lifecycle manager.

        Args:
            client: tmux client used for every external call
            registry: Registry updated as sessions are created and removed
            planner: Layout planner, default cap when None
            session_prefix: Prefix marking session names owned by this system
            columns: Width of new sessions
            rows: Height of new sessions
        """
        self._client = client
        self._registry = registry
        self._planner = planner or LayoutPlanner()
        self.session_prefix = session_prefix
        self.columns = columns
        self.rows = rows
        self._sequence = itertools.count(1)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def planner(self) -> LayoutPlanner:
        return self._planner

    def _new_session_id(self) -> str:
        # the counter keeps ids unique in-process; the suffix keeps names
        # unique across processes sharing one tmux server
        return f"agents-{next(self._sequence)}-{uuid.uuid4().hex[:8]}"

    def session_name_for(self, session_id: str) -> str:
        return f"{self.session_prefix}-{session_id}"

    def session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serialising layout and termination of one session."""
        return self._locks.setdefault(session_id, asyncio.Lock())

    def require_session(self, session_id: str) -> Session:
        """Return the registered session or raise :class:`SessionNotFound`."""
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @audit_log("session_create")
    async def create_session(self, agent_ids: Iterable[str]) -> str:
        """Create a detached tmux session for a team of agents.

        Args:
            agent_ids: Agents the session is meant to host

        Returns:
            Internal session id

        Raises:
            MultiplexerCommandFailed: If tmux refuses to create the session;
                nothing is registered in that case
        """
        agent_ids = list(agent_ids)
        session_id = self._new_session_id()
        session_name = self.session_name_for(session_id)

        log_session_operation("create", session_name, "starting")
        try:
            await self._client.new_session(session_name, self.columns, self.rows)
        except MultiplexerCommandFailed as e:
            log_session_operation("create", session_name, "error", {"error": e.message})
            raise e.with_operation(
                f"Failed to create session {session_name}",
                operation="new_session",
                session_name=session_name,
            ) from e

        self._registry.add(
            Session(
                id=session_id,
                name=session_name,
                created_at=datetime.now(timezone.utc),
                agent_ids=agent_ids,
            )
        )
        log_session_operation(
            "create", session_name, "success", {"agents": len(agent_ids)}
        )
        return session_id

    async def setup_layout(self, session_id: str, agent_count: int) -> None:
        """Lay out panes or windows for ``agent_count`` agents.

        Operations run strictly in plan order. If one fails, the operations
        before it stay applied, the session is marked
        :attr:`SessionState.LAYOUT_PARTIAL` and :class:`PartialLayoutFailure`
        is raised. Calling again with the same count resumes at the failed
        operation.

        Raises:
            SessionNotFound: If the session is not registered
            PartialLayoutFailure: If an operation fails
        """
        session = self.require_session(session_id)

        async with self.session_lock(session_id):
            if session_id not in self._registry:
                raise SessionNotFound(session_id)

            ops = self._planner.plan(agent_count)
            start = 0
            if session.state is SessionState.LAYOUT_PARTIAL and session.layout_plan == ops:
                start = session.layout_cursor
                logger.info(
                    f"Resuming layout of {session.name} at step {start + 1}/{len(ops)}",
                    session_name=session.name,
                )
            else:
                session.layout_plan = ops
                session.layout_cursor = 0

            session.state = SessionState.LAYOUT_PENDING

            unplaced = self._planner.unplaced_agents(agent_count)
            if unplaced:
                log_unplaced_agents(session.name, agent_count, unplaced)

            for index in range(start, len(ops)):
                op = ops[index]
                try:
                    await self._apply(session, op, index)
                except MultiplexerCommandFailed as e:
                    session.state = SessionState.LAYOUT_PARTIAL
                    session.layout_cursor = index
                    log_session_operation(
                        "layout",
                        session.name,
                        "error",
                        {"failed_op": op.describe(), "applied_ops": index},
                    )
                    raise PartialLayoutFailure(
                        f"Failed to setup layout for session {session.name} at step "
                        f"{index + 1}/{len(ops)} ({op.describe()}): {e.message}",
                        applied_ops=index,
                        total_ops=len(ops),
                        context={
                            "session_id": session_id,
                            "session_name": session.name,
                            "failed_op": op.describe(),
                        },
                    ) from e
                session.layout_cursor = index + 1

            session.state = SessionState.LAYOUT_COMPLETE
            log_layout_setup(session.name, agent_count, len(ops), len(ops))

    async def _apply(self, session: Session, op: LayoutOp, index: int) -> None:
        if op.kind is OpKind.SPLIT:
            pane_id = await self._client.split_window(
                op.address(session.name), op.direction
            )
            window = session.get_window(ROOT_WINDOW_ID)
            if window is None:
                window = Window(id=ROOT_WINDOW_ID, name="main")
                session.windows.append(window)
        else:
            pane_id = await self._client.new_window(session.name, op.window_name)
            # window-per-agent plans only contain new windows, numbered from 1
            window = Window(id=str(index + 1), name=op.window_name)
            session.windows.append(window)

        if pane_id:
            window.panes.append(Pane(id=strip_pane_sigil(pane_id)))

    @audit_log("session_terminate")
    async def terminate_session(self, session_id: str) -> None:
        """Kill a session and drop it from the registry.

        Raises:
            SessionNotFound: If the session is not registered
            MultiplexerCommandFailed: If the kill fails; the entry is kept
        """
        session = self.require_session(session_id)
        async with self.session_lock(session_id):
            if session_id not in self._registry:
                raise SessionNotFound(session_id)
            try:
                await self._kill(session, "manual")
            except MultiplexerCommandFailed as e:
                raise e.with_operation(
                    f"Failed to terminate session {session.name}",
                    operation="kill_session",
                    session_id=session_id,
                ) from e
        self._locks.pop(session_id, None)

    async def _kill(self, session: Session, cleanup_type: str) -> None:
        log_session_cleanup(session.name, cleanup_type)
        try:
            await self._client.kill_session(session.name)
        except Exception as e:
            log_session_operation("terminate", session.name, "error", {"error": str(e)})
            raise

        self._registry.remove(session.id)
        session.state = SessionState.TERMINATED
        log_session_operation("terminate", session.name, "success")

    async def cleanup_sessions(self) -> CleanupResult:
        """Terminate every registered session, best effort.

        A failure on one session is recorded and the rest are still
        processed. Failed sessions stay registered for a later retry.
        """
        result = CleanupResult()

        for session in self._registry.snapshot():
            try:
                async with self.session_lock(session.id):
                    if session.id not in self._registry:
                        continue
                    await self._kill(session, "bulk")
            except Exception as e:
                error = f"Failed to cleanup session {session.name}: {e}"
                result.errors.append(error)
                logger.error(error, exception=e, session_name=session.name)
            else:
                self._locks.pop(session.id, None)
                result.cleaned_session_names.append(session.name)

        logger.info(
            "Session cleanup completed",
            cleaned_up=len(result.cleaned_session_names),
            failed=len(result.errors),
        )
        return result

    async def kill_untracked_sessions(self, session_names: Iterable[str]) -> CleanupResult:
        """Kill live sessions that carry the prefix but are not registered.

        Names that are registered or foreign to this system are skipped.
        Best effort, like :meth:`cleanup_sessions`.
        """
        result = CleanupResult()
        registered = self._registry.names()

        for name in session_names:
            if not name.startswith(f"{self.session_prefix}-") or name in registered:
                continue
            log_session_cleanup(name, "orphaned")
            try:
                await self._client.kill_session(name)
            except MultiplexerCommandFailed as e:
                error = f"Failed to cleanup session {name}: {e.message}"
                result.errors.append(error)
                logger.error(error, session_name=name)
            else:
                result.cleaned_session_names.append(name)

        return result
