"""In-process registry of the tmux sessions this process created."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .layout import LayoutOp


class SessionState(Enum):
    """Lifecycle state of an orchestrated session."""

    CREATED = "created"
    LAYOUT_PENDING = "layout_pending"
    LAYOUT_COMPLETE = "layout_complete"
    LAYOUT_PARTIAL = "layout_partial"
    TERMINATED = "terminated"


@dataclass
class Pane:
    """A single tmux pane. ``id`` is the tmux pane id without the ``%`` sigil."""

    id: str
    agent_id: str | None = None
    command: str | None = None


@dataclass
class Window:
    """A tmux window within a session."""

    id: str
    name: str
    panes: list[Pane] = field(default_factory=list)


@dataclass
class Session:
    """A tmux session hosting agent panes."""

    id: str
    name: str
    created_at: datetime
    windows: list[Window] = field(default_factory=list)
    agent_ids: list[str] = field(default_factory=list)
    state: SessionState = SessionState.CREATED
    layout_plan: list["LayoutOp"] = field(default_factory=list)
    layout_cursor: int = 0
    assignments: dict[str, str] = field(default_factory=dict)

    def get_window(self, window_id: str) -> Window | None:
        for window in self.windows:
            if window.id == window_id:
                return window
        return None

    def find_pane(self, pane_id: str) -> Pane | None:
        for window in self.windows:
            for pane in window.panes:
                if pane.id == pane_id:
                    return pane
        return None


class SessionRegistry:
    """Thread-safe mapping of session id to :class:`Session`.

    Holds what this process believes it created. Entries may describe a
    partially laid out session; the registry is not a mirror of tmux.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()

    def add(self, session: Session) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session {session.id} is already registered")
            self._sessions[session.id] = session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def names(self) -> set[str]:
        with self._lock:
            return {s.name for s in self._sessions.values()}

    def snapshot(self) -> list[Session]:
        """Return the registered sessions in creation order."""
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
