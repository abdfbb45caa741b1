"""Unit tests for the libtmux-backed client."""

import logging
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from libtmux import exc as libtmux_exc

from pane_orchestrator.tmux.client import (
    PANE_INFO_FORMAT,
    SESSION_LIST_FORMAT,
    LibtmuxClient,
    strip_pane_sigil,
)
from pane_orchestrator.tmux.layout import SplitDirection
from pane_orchestrator.tmux.monitor import SessionMonitor
from pane_orchestrator.tmux.registry import Session
from pane_orchestrator.utils.logging import MultiplexerCommandFailed, MultiplexerTimeout


def _result(stdout=None, stderr=None, returncode=0):
    result = MagicMock()
    result.stdout = stdout or []
    result.stderr = stderr or []
    result.returncode = returncode
    return result


@pytest.fixture
def mock_server():
    server = MagicMock()
    server.cmd.return_value = _result()
    return server


@pytest.fixture
def client(mock_server):
    return LibtmuxClient(server=mock_server, timeout=5.0)


class TestStripPaneSigil:
    """Test pane id normalization."""

    def test_strips_percent(self):
        assert strip_pane_sigil("%3") == "3"

    def test_plain_id_unchanged(self):
        assert strip_pane_sigil("3") == "3"

    def test_whitespace(self):
        assert strip_pane_sigil(" %7\n") == "7"


class TestLibtmuxClient:
    """Test command construction and error mapping."""

    def test_builds_server_from_socket_name(self):
        with patch("pane_orchestrator.tmux.client.libtmux.Server") as server_cls:
            LibtmuxClient(socket_name="agents")
        server_cls.assert_called_once_with(socket_name="agents")

    @pytest.mark.asyncio
    async def test_new_session(self, client, mock_server):
        await client.new_session("team", 120, 30)
        mock_server.cmd.assert_called_once_with(
            "new-session", "-d", "-s", "team", "-x", "120", "-y", "30"
        )

    @pytest.mark.asyncio
    async def test_split_window_returns_new_pane(self, client, mock_server):
        mock_server.cmd.return_value = _result(stdout=["%4"])

        pane_id = await client.split_window("team:0.0", SplitDirection.VERTICAL)

        assert pane_id == "%4"
        mock_server.cmd.assert_called_once_with(
            "split-window", "-t", "team:0.0", "-v", "-P", "-F", "#{pane_id}"
        )

    @pytest.mark.asyncio
    async def test_horizontal_split_flag(self, client, mock_server):
        await client.split_window("team", SplitDirection.HORIZONTAL)
        assert "-h" in mock_server.cmd.call_args.args

    @pytest.mark.asyncio
    async def test_new_window(self, client, mock_server):
        mock_server.cmd.return_value = _result(stdout=["%9"])
        assert await client.new_window("team", "agent-1") == "%9"
        mock_server.cmd.assert_called_once_with(
            "new-window", "-t", "team", "-n", "agent-1", "-P", "-F", "#{pane_id}"
        )

    @pytest.mark.asyncio
    async def test_select_and_send_keys(self, client, mock_server):
        await client.select_pane("team:%1", "coder")
        await client.send_keys("team:%1", "cd ./src/agents/coder")

        assert mock_server.cmd.call_args_list[0].args == (
            "select-pane", "-t", "team:%1", "-T", "coder"
        )
        assert mock_server.cmd.call_args_list[1].args == (
            "send-keys", "-t", "team:%1", "cd ./src/agents/coder", "Enter"
        )

    @pytest.mark.asyncio
    async def test_list_panes(self, client, mock_server):
        mock_server.cmd.return_value = _result(stdout=["%0:bash", "%1:node"])

        output = await client.list_panes("team", PANE_INFO_FORMAT, all_windows=True)

        assert output == "%0:bash\n%1:node"
        mock_server.cmd.assert_called_once_with(
            "list-panes", "-s", "-t", "team", "-F", PANE_INFO_FORMAT
        )

    @pytest.mark.asyncio
    async def test_kill_and_display(self, client, mock_server):
        await client.kill_session("team")
        mock_server.cmd.assert_called_with("kill-session", "-t", "team")

        mock_server.cmd.return_value = _result(stdout=["team:2:1700000000"])
        assert await client.display_message("team", "fmt") == "team:2:1700000000"

    @pytest.mark.asyncio
    async def test_capture_pane(self, client, mock_server):
        await client.capture_pane("team:%1", 40)
        mock_server.cmd.assert_called_once_with(
            "capture-pane", "-t", "team:%1", "-p", "-S", "-40"
        )

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self, client, mock_server):
        mock_server.cmd.return_value = _result(
            stderr=["no server running on /tmp/tmux-0/default"], returncode=1
        )

        with pytest.raises(MultiplexerCommandFailed, match="no server running") as exc_info:
            await client.list_sessions("#{session_name}")

        assert exc_info.value.context["command"] == "list-sessions"

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self, client, mock_server):
        mock_server.cmd.side_effect = libtmux_exc.TmuxCommandNotFound()

        with pytest.raises(MultiplexerCommandFailed, match="could not be run"):
            await client.kill_session("team")

    @pytest.mark.asyncio
    async def test_timeout(self, mock_server):
        mock_server.cmd.side_effect = lambda *args: time.sleep(0.5)
        client = LibtmuxClient(server=mock_server, timeout=0.05)

        with pytest.raises(MultiplexerTimeout, match="timed out"):
            await client.kill_session("team")


class TestDebugLogging:
    """Commands keep working when debug logging is enabled."""

    @pytest.mark.asyncio
    async def test_command_logs_arguments(self, client, mock_server, caplog):
        mock_server.cmd.return_value = _result(stdout=["team:1700000000"])

        with caplog.at_level(logging.DEBUG):
            output = await client.list_sessions(SESSION_LIST_FORMAT)

        assert output == "team:1700000000"
        record = next(
            r for r in caplog.records if r.getMessage().startswith("tmux list-sessions")
        )
        assert record.tmux_args == ["-F", SESSION_LIST_FORMAT]
        assert record.funcName == "_run"

    @pytest.mark.asyncio
    async def test_registry_fallback_with_debug_logging(
        self, client, mock_server, registry, caplog
    ):
        registry.add(
            Session(
                id="agents-1-abc",
                name="team-agents-1-abc",
                created_at=datetime.now(timezone.utc),
            )
        )
        monitor = SessionMonitor(client, registry, session_prefix="team")
        mock_server.cmd.return_value = _result(stderr=["no server running"], returncode=1)

        with caplog.at_level(logging.DEBUG):
            sessions = await monitor.get_active_sessions()

        assert [s.id for s in sessions] == ["agents-1-abc"]
