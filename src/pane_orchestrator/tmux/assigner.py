"""Binding of agent identities to tmux panes."""

import shlex

from ..utils.logging import MultiplexerCommandFailed, SessionNotFound
from .client import MultiplexerClient, strip_pane_sigil
from .logging_utils import log_pane_assignment
from .registry import Session, SessionRegistry

DEFAULT_AGENT_PATH_TEMPLATE = "./src/agents/{agent_id}"


class PaneAssigner:
    """Titles a pane with an agent id and moves it into the agent's directory.

    The two tmux calls are not atomic. When titling succeeds and the
    directory change fails, the pane stays titled but uninitialized until
    :meth:`initialize_pane` is retried.
    """

    def __init__(
        self,
        client: MultiplexerClient,
        registry: SessionRegistry,
        agent_path_template: str = DEFAULT_AGENT_PATH_TEMPLATE,
    ):
        self._client = client
        self._registry = registry
        self.agent_path_template = agent_path_template

    def agent_path(self, agent_id: str) -> str:
        return self.agent_path_template.format(agent_id=agent_id)

    def _require(self, session_id: str) -> Session:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @staticmethod
    def pane_target(session: Session, pane_id: str) -> str:
        return f"{session.name}:%{strip_pane_sigil(pane_id)}"

    async def assign(self, session_id: str, agent_id: str, pane_id: str) -> None:
        """Bind ``agent_id`` to ``pane_id`` in a registered session.

        Raises:
            SessionNotFound: Before any tmux call if the session is unknown
            MultiplexerCommandFailed: If either step fails; ``context["step"]``
                is ``"set_title"`` or ``"initialize_directory"``
        """
        session = self._require(session_id)
        pane_id = strip_pane_sigil(pane_id)
        target = self.pane_target(session, pane_id)

        try:
            await self._client.select_pane(target, agent_id)
        except MultiplexerCommandFailed as e:
            raise e.with_operation(
                f"Failed to assign agent {agent_id} to pane %{pane_id}",
                step="set_title",
                session_id=session_id,
                agent_id=agent_id,
            ) from e

        await self._initialize(session, agent_id, pane_id)
        self._record(session, agent_id, pane_id)

    async def initialize_pane(self, session_id: str, agent_id: str, pane_id: str) -> None:
        """Change a pane's working directory to the agent's directory.

        This is the second step of :meth:`assign` on its own, for retrying
        after a failed initialization. Success completes the assignment.
        """
        session = self._require(session_id)
        pane_id = strip_pane_sigil(pane_id)
        await self._initialize(session, agent_id, pane_id)
        self._record(session, agent_id, pane_id)

    def _record(self, session: Session, agent_id: str, pane_id: str) -> None:
        # last write wins
        session.assignments[pane_id] = agent_id
        pane = session.find_pane(pane_id)
        if pane is not None:
            pane.agent_id = agent_id

        log_pane_assignment(session.name, agent_id, pane_id)

    async def _initialize(self, session: Session, agent_id: str, pane_id: str) -> None:
        command = f"cd {shlex.quote(self.agent_path(agent_id))}"
        try:
            await self._client.send_keys(self.pane_target(session, pane_id), command)
        except MultiplexerCommandFailed as e:
            raise e.with_operation(
                f"Pane %{pane_id} titled {agent_id} but not initialized",
                step="initialize_directory",
                session_id=session.id,
                agent_id=agent_id,
            ) from e
