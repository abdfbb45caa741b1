"""
Pytest configuration and shared fixtures for pane-orchestrator tests.
"""

import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pane_orchestrator.config.loader import OrchestratorConfig
from pane_orchestrator.tmux import AgentSessionService, SessionRegistry
from pane_orchestrator.tmux.client import MultiplexerClient
from pane_orchestrator.tmux.layout import SplitDirection
from pane_orchestrator.utils.logging import MultiplexerCommandFailed

SESSION_CREATED = 1700000000


class FakeMultiplexerClient(MultiplexerClient):
    """In-memory tmux stand-in that records every call.

    Panes get ids ``%0``, ``%1``, ... in creation order. Failures are
    injected per method with :meth:`fail`.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.foreign_sessions: list[str] = []
        self.panes: dict[str, list[str]] = {}
        self.windows: dict[str, int] = {}
        self.titles: dict[str, str] = {}
        self.captured_output = "line 1\nline 2"
        self._failures: dict[str, tuple[Callable[..., bool], Exception | None]] = {}
        self._next_pane = 0

    def fail(
        self,
        method: str,
        when: Callable[..., bool] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Make ``method`` raise when ``when(*args)`` is true (always if None)."""
        self._failures[method] = (when or (lambda *args: True), error)

    def recover(self, method: str) -> None:
        self._failures.pop(method, None)

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    @property
    def live_sessions(self) -> list[str]:
        return list(self.panes)

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if method in self._failures:
            predicate, error = self._failures[method]
            if predicate(*args):
                raise error or MultiplexerCommandFailed(
                    f"tmux {method} failed: simulated", context={"command": method}
                )

    def _new_pane(self, session_name: str) -> str:
        pane_id = f"%{self._next_pane}"
        self._next_pane += 1
        self.panes[session_name].append(pane_id)
        return pane_id

    async def new_session(self, name: str, cols: int, rows: int) -> None:
        self._record("new_session", name, cols, rows)
        self.panes[name] = []
        self.windows[name] = 1
        self._new_pane(name)

    async def split_window(self, target: str, direction: SplitDirection) -> str:
        self._record("split_window", target, direction)
        return self._new_pane(target.split(":")[0])

    async def new_window(self, session_name: str, window_name: str) -> str:
        self._record("new_window", session_name, window_name)
        self.windows[session_name] += 1
        return self._new_pane(session_name)

    async def select_pane(self, target: str, title: str) -> None:
        self._record("select_pane", target, title)
        self.titles[target.split(":")[-1]] = title

    async def send_keys(self, target: str, text: str) -> None:
        self._record("send_keys", target, text)

    async def list_panes(self, target: str, format: str, all_windows: bool = False) -> str:
        self._record("list_panes", target, format, all_windows)
        lines = []
        for i, pane_id in enumerate(self.panes.get(target, [])):
            if "pane_title" in format:
                title = self.titles.get(pane_id, "host")
                lines.append(f"{pane_id}:{title}:bash:{1 if i == 0 else 0}")
            else:
                lines.append(f"{pane_id}:bash")
        return "\n".join(lines)

    async def list_sessions(self, format: str) -> str:
        self._record("list_sessions", format)
        names = self.foreign_sessions + self.live_sessions
        return "\n".join(f"{name}:{SESSION_CREATED}" for name in names)

    async def kill_session(self, name: str) -> None:
        self._record("kill_session", name)
        self.panes.pop(name, None)
        self.windows.pop(name, None)

    async def display_message(self, target: str, format: str) -> str:
        self._record("display_message", target, format)
        return f"{target}:{self.windows.get(target, 0)}:{SESSION_CREATED}"

    async def capture_pane(self, target: str, lines: int) -> str:
        self._record("capture_pane", target, lines)
        return self.captured_output


@pytest.fixture
def fake_client() -> FakeMultiplexerClient:
    return FakeMultiplexerClient()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def test_config() -> OrchestratorConfig:
    return OrchestratorConfig(session_prefix="test-agents", command_timeout=None)


@pytest.fixture
def service(fake_client, registry, test_config) -> AgentSessionService:
    """Session service wired to the fake client."""
    return AgentSessionService(client=fake_client, config=test_config, registry=registry)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real config files and env settings out of tests."""
    for key in list(os.environ):
        if key.startswith("PANE_ORCHESTRATOR_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level

    yield

    for handler in root_logger.handlers[:]:
        if handler not in original_handlers:
            handler.close()
            root_logger.removeHandler(handler)
    for handler in original_handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture(autouse=True)
def reset_global_service():
    """Drop the process-wide session service between tests."""
    import pane_orchestrator.tmux.service as service_module

    service_module._session_service = None
    yield
    service_module._session_service = None
