"""
Tmux session orchestration for teams of agents.

This package provides:
- Layout planning from an agent count
- Session creation, layout application and termination
- Agent to pane binding
- Live session monitoring and orphan cleanup
"""

from .assigner import PaneAssigner
from .client import LibtmuxClient, MultiplexerClient, strip_pane_sigil
from .layout import LayoutOp, LayoutPlanner, OpKind, SplitDirection, plan
from .lifecycle import CleanupResult, SessionLifecycleManager
from .monitor import PaneState, SessionMonitor, SessionReport
from .registry import Pane, Session, SessionRegistry, SessionState, Window
from .service import AgentSessionService, cleanup_session_service, get_session_service

__all__ = [
    "AgentSessionService",
    "CleanupResult",
    "LayoutOp",
    "LayoutPlanner",
    "LibtmuxClient",
    "MultiplexerClient",
    "OpKind",
    "Pane",
    "PaneAssigner",
    "PaneState",
    "Session",
    "SessionLifecycleManager",
    "SessionMonitor",
    "SessionRegistry",
    "SessionReport",
    "SessionState",
    "SplitDirection",
    "Window",
    "cleanup_session_service",
    "get_session_service",
    "plan",
    "strip_pane_sigil",
]
