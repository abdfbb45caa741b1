"""Unit tests for agent to pane binding."""

import pytest

from pane_orchestrator.tmux.assigner import PaneAssigner
from pane_orchestrator.tmux.lifecycle import SessionLifecycleManager
from pane_orchestrator.utils.logging import MultiplexerCommandFailed, SessionNotFound


@pytest.fixture
def manager(fake_client, registry):
    return SessionLifecycleManager(fake_client, registry, session_prefix="test-agents")


@pytest.fixture
def assigner(fake_client, registry):
    return PaneAssigner(fake_client, registry)


class TestPaneAssigner:
    """Test PaneAssigner.assign."""

    @pytest.mark.asyncio
    async def test_unknown_session_makes_no_calls(self, assigner, fake_client):
        with pytest.raises(SessionNotFound):
            await assigner.assign("missing", "a1", "3")
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_assign_titles_then_changes_directory(
        self, assigner, manager, fake_client, registry
    ):
        session_id = await manager.create_session(["coder"])
        name = registry.get(session_id).name
        fake_client.calls.clear()

        await assigner.assign(session_id, "coder", "3")

        assert fake_client.calls == [
            ("select_pane", (f"{name}:%3", "coder")),
            ("send_keys", (f"{name}:%3", "cd ./src/agents/coder")),
        ]
        assert registry.get(session_id).assignments == {"3": "coder"}

    @pytest.mark.asyncio
    async def test_sigil_is_stripped(self, assigner, manager, fake_client, registry):
        session_id = await manager.create_session(["coder"])
        await assigner.assign(session_id, "coder", "%3")
        assert fake_client.calls_to("select_pane")[0][0].endswith(":%3")
        assert registry.get(session_id).assignments == {"3": "coder"}

    @pytest.mark.asyncio
    async def test_directory_is_shell_quoted(self, assigner, manager, fake_client):
        session_id = await manager.create_session(["odd agent"])
        await assigner.assign(session_id, "odd agent", "1")
        assert fake_client.calls_to("send_keys")[0][1] == "cd './src/agents/odd agent'"

    @pytest.mark.asyncio
    async def test_custom_path_template(self, manager, fake_client, registry):
        assigner = PaneAssigner(fake_client, registry, "/work/{agent_id}/repo")
        session_id = await manager.create_session(["coder"])
        await assigner.assign(session_id, "coder", "1")
        assert fake_client.calls_to("send_keys")[0][1] == "cd /work/coder/repo"

    @pytest.mark.asyncio
    async def test_title_failure_skips_directory(self, assigner, manager, fake_client):
        session_id = await manager.create_session(["coder"])
        fake_client.fail("select_pane")

        with pytest.raises(MultiplexerCommandFailed) as exc_info:
            await assigner.assign(session_id, "coder", "1")

        assert exc_info.value.context["step"] == "set_title"
        assert fake_client.calls_to("send_keys") == []

    @pytest.mark.asyncio
    async def test_directory_failure_leaves_pane_titled(
        self, assigner, manager, fake_client, registry
    ):
        session_id = await manager.create_session(["coder"])
        fake_client.fail("send_keys")

        with pytest.raises(MultiplexerCommandFailed) as exc_info:
            await assigner.assign(session_id, "coder", "1")

        assert exc_info.value.context["step"] == "initialize_directory"
        assert fake_client.titles["%1"] == "coder"
        assert registry.get(session_id).assignments == {}

    @pytest.mark.asyncio
    async def test_initialize_pane_retry_completes_assignment(
        self, assigner, manager, fake_client, registry
    ):
        session_id = await manager.create_session(["coder"])
        fake_client.fail("send_keys")
        with pytest.raises(MultiplexerCommandFailed):
            await assigner.assign(session_id, "coder", "1")

        fake_client.recover("send_keys")
        await assigner.initialize_pane(session_id, "coder", "1")

        assert len(fake_client.calls_to("select_pane")) == 1
        assert len(fake_client.calls_to("send_keys")) == 2
        assert registry.get(session_id).assignments == {"1": "coder"}

    @pytest.mark.asyncio
    async def test_last_write_wins(self, assigner, manager, registry):
        session_id = await manager.create_session(["a1", "a2"])
        await manager.setup_layout(session_id, 2)
        pane_id = registry.get(session_id).windows[0].panes[0].id

        await assigner.assign(session_id, "a1", pane_id)
        await assigner.assign(session_id, "a2", pane_id)

        session = registry.get(session_id)
        assert session.assignments == {pane_id: "a2"}
        assert session.find_pane(pane_id).agent_id == "a2"
