"""
Read-only views of orchestrated sessions.

Reconciles the registry with what tmux reports. Only
:meth:`SessionMonitor.get_active_sessions` tolerates tmux being unavailable;
every other query propagates tmux failures.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from ..utils.logging import (
    LogContext,
    MultiplexerCommandFailed,
    SessionNotFound,
    get_logger,
)
from .client import (
    PANE_INFO_FORMAT,
    PANE_STATE_FORMAT,
    SESSION_INFO_FORMAT,
    SESSION_LIST_FORMAT,
    MultiplexerClient,
    strip_pane_sigil,
)
from .logging_utils import log_orphaned_sessions, log_registry_fallback
from .registry import Pane, Session, SessionRegistry

logger = get_logger(__name__, LogContext.MONITOR)


@dataclass
class LiveSessionInfo:
    """Session metadata as reported by tmux."""

    name: str
    windows: int | None = None
    created: int | None = None
    raw: str = ""


@dataclass
class PaneState:
    """Live state of one pane."""

    pane_id: str
    title: str
    command: str
    is_active: bool


@dataclass
class SessionReport:
    """Result of :meth:`SessionMonitor.monitor_session`."""

    session_info: LiveSessionInfo
    pane_states: list[PaneState] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _lines(output: str) -> list[str]:
    return [line for line in output.strip().splitlines() if line.strip()]


def _to_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def parse_pane_info(output: str) -> list[Pane]:
    """Parse ``#{pane_id}:#{pane_current_command}`` lines into panes."""
    panes = []
    for line in _lines(output):
        pane_id, _, command = line.partition(":")
        panes.append(Pane(id=strip_pane_sigil(pane_id), command=command or None))
    return panes


def parse_pane_states(output: str) -> list[PaneState]:
    """Parse ``id:title:command:active`` lines.

    Titles may contain colons, so the id is taken from the left and the
    command and active flag from the right.
    """
    states = []
    for line in _lines(output):
        pane_id, _, rest = line.partition(":")
        parts = rest.rsplit(":", 2)
        while len(parts) < 3:
            parts.insert(0, "")
        title, command, active = parts
        states.append(
            PaneState(
                pane_id=strip_pane_sigil(pane_id),
                title=title,
                command=command,
                is_active=active.strip() == "1",
            )
        )
    return states


def parse_session_info(output: str, fallback_name: str) -> LiveSessionInfo:
    """Parse ``#{session_name}:#{session_windows}:#{session_created}``."""
    raw = output.strip()
    parts = raw.rsplit(":", 2)
    if len(parts) != 3:
        return LiveSessionInfo(name=fallback_name, raw=raw)
    name, windows, created = parts
    return LiveSessionInfo(
        name=name or fallback_name,
        windows=_to_int(windows),
        created=_to_int(created),
        raw=raw,
    )


def parse_session_names(output: str) -> list[str]:
    """Extract session names from ``#{session_name}:#{session_created}`` lines."""
    return [line.rsplit(":", 1)[0] for line in _lines(output)]


class SessionMonitor:
    """Queries live tmux state for registered sessions."""

    def __init__(
        self,
        client: MultiplexerClient,
        registry: SessionRegistry,
        session_prefix: str,
    ):
        self._client = client
        self._registry = registry
        self.session_prefix = session_prefix

    def _owns(self, session_name: str) -> bool:
        return session_name.startswith(f"{self.session_prefix}-")

    def _require(self, session_id: str) -> Session:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def list_owned_session_names(self) -> list[str]:
        """Names of live tmux sessions that carry this system's prefix."""
        output = await self._client.list_sessions(SESSION_LIST_FORMAT)
        return [name for name in parse_session_names(output) if self._owns(name)]

    async def get_active_sessions(self) -> list[Session]:
        """Registered sessions that tmux currently reports as live.

        If tmux cannot be queried at all, the whole registry is returned
        unfiltered instead of raising.
        """
        try:
            live = set(await self.list_owned_session_names())
        except MultiplexerCommandFailed as e:
            sessions = self._registry.snapshot()
            log_registry_fallback(e, len(sessions))
            return sessions

        return [s for s in self._registry.snapshot() if s.name in live]

    async def monitor_session(self, session_id: str) -> SessionReport:
        """Live session metadata and per-pane state.

        Raises:
            SessionNotFound: If the session is not registered
            MultiplexerCommandFailed: If tmux cannot be queried
        """
        session = self._require(session_id)

        try:
            info = await self._client.display_message(session.name, SESSION_INFO_FORMAT)
            panes = await self._client.list_panes(
                session.name, PANE_STATE_FORMAT, all_windows=True
            )
        except MultiplexerCommandFailed as e:
            raise e.with_operation(
                f"Failed to monitor session {session.name}", session_id=session_id
            ) from e

        return SessionReport(
            session_info=parse_session_info(info, session.name),
            pane_states=parse_pane_states(panes),
        )

    async def get_pane_info(self, session_id: str) -> list[Pane]:
        """Panes of a session with their current foreground command.

        Raises:
            SessionNotFound: If the session is not registered
            MultiplexerCommandFailed: If tmux cannot be queried
        """
        session = self._require(session_id)
        try:
            output = await self._client.list_panes(
                session.name, PANE_INFO_FORMAT, all_windows=True
            )
        except MultiplexerCommandFailed as e:
            raise e.with_operation(
                f"Failed to get pane info for {session.name}", session_id=session_id
            ) from e

        panes = parse_pane_info(output)
        for pane in panes:
            pane.agent_id = session.assignments.get(pane.id)
        return panes

    async def find_orphaned_sessions(self) -> list[str]:
        """Live prefixed sessions that this process did not create.

        Typically left behind by an earlier process that exited without
        cleaning up.
        """
        registered = self._registry.names()
        orphaned = [
            name for name in await self.list_owned_session_names() if name not in registered
        ]
        log_orphaned_sessions(orphaned)
        return orphaned

    async def capture_pane(self, session_id: str, pane_id: str, lines: int = 50) -> str:
        """Recent output of a pane in a registered session."""
        session = self._require(session_id)
        target = f"{session.name}:%{strip_pane_sigil(pane_id)}"
        try:
            return await self._client.capture_pane(target, lines)
        except MultiplexerCommandFailed as e:
            raise e.with_operation(
                f"Failed to capture pane %{pane_id}", session_id=session_id
            ) from e
