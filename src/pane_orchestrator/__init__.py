"""pane-orchestrator: tmux session orchestration for teams of agents."""

__version__ = "0.1.0"

from .tmux.service import AgentSessionService, get_session_service

__all__ = ["AgentSessionService", "get_session_service", "__version__"]
