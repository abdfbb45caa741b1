"""
tmux client port and its libtmux-backed adapter.

:class:`MultiplexerClient` is the only boundary through which the
orchestrator touches tmux. Each method issues exactly one tmux command.
"""

import asyncio
from abc import ABC, abstractmethod

import libtmux
from libtmux import exc as libtmux_exc

from ..utils.logging import (
    LogContext,
    MultiplexerCommandFailed,
    MultiplexerTimeout,
    get_logger,
)
from .layout import SplitDirection

logger = get_logger(__name__, LogContext.TMUX)

PANE_SIGIL = "%"

# tmux -F formats used by the orchestrator
NEW_PANE_FORMAT = "#{pane_id}"
PANE_INFO_FORMAT = "#{pane_id}:#{pane_current_command}"
PANE_STATE_FORMAT = "#{pane_id}:#{pane_title}:#{pane_current_command}:#{pane_active}"
SESSION_LIST_FORMAT = "#{session_name}:#{session_created}"
SESSION_INFO_FORMAT = "#{session_name}:#{session_windows}:#{session_created}"


def strip_pane_sigil(pane_id: str) -> str:
    """Return a tmux pane id without its leading ``%``."""
    return pane_id.strip().lstrip(PANE_SIGIL)


class MultiplexerClient(ABC):
    """Port for single tmux operations."""

    @abstractmethod
    async def new_session(self, name: str, cols: int, rows: int) -> None:
        """Create a detached session of the given geometry."""

    @abstractmethod
    async def split_window(self, target: str, direction: SplitDirection) -> str:
        """Split ``target`` and return the new pane id."""

    @abstractmethod
    async def new_window(self, session_name: str, window_name: str) -> str:
        """Create a window in ``session_name`` and return its first pane id."""

    @abstractmethod
    async def select_pane(self, target: str, title: str) -> None:
        """Select ``target`` and set its title."""

    @abstractmethod
    async def send_keys(self, target: str, text: str) -> None:
        """Type ``text`` into ``target`` followed by Enter."""

    @abstractmethod
    async def list_panes(
        self, target: str, format: str, all_windows: bool = False
    ) -> str:
        """List panes of ``target`` rendered with ``format``, one per line."""

    @abstractmethod
    async def list_sessions(self, format: str) -> str:
        """List all sessions on the server rendered with ``format``."""

    @abstractmethod
    async def kill_session(self, name: str) -> None:
        """Kill the named session."""

    @abstractmethod
    async def display_message(self, target: str, format: str) -> str:
        """Render ``format`` against ``target``."""

    @abstractmethod
    async def capture_pane(self, target: str, lines: int) -> str:
        """Return the last ``lines`` lines of ``target``'s output."""


class LibtmuxClient(MultiplexerClient):
    """MultiplexerClient that runs tmux commands through ``libtmux``.

    Commands run in a worker thread, bounded by ``timeout`` seconds when one
    is set.
    """

    def __init__(
        self,
        socket_name: str | None = None,
        timeout: float | None = 30.0,
        server: libtmux.Server | None = None,
    ):
        """Initialize the client.

        Args:
            socket_name: tmux socket name (``-L``), default server if None
            timeout: Per-command timeout in seconds, None to wait forever
            server: Pre-built libtmux server, mainly for tests
        """
        if server is None:
            server = libtmux.Server(socket_name=socket_name)
        self._server = server
        self._timeout = timeout

    async def _run(self, command: str, *args: str) -> list[str]:
        """Run one tmux command and return its stdout lines.

        Raises:
            MultiplexerTimeout: If the command exceeds the timeout
            MultiplexerCommandFailed: If tmux is missing or exits non-zero
        """
        context = {"command": command, "tmux_args": list(args)}
        logger.debug(f"tmux {command} {' '.join(args)}", **context)

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self._server.cmd, command, *args),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise MultiplexerTimeout(
                f"tmux {command} timed out after {self._timeout}s", context=context
            ) from e
        except (libtmux_exc.LibTmuxException, OSError) as e:
            raise MultiplexerCommandFailed(
                f"tmux {command} could not be run: {e}", context=context
            ) from e

        if result.returncode != 0:
            stderr = "\n".join(result.stderr) or f"exit status {result.returncode}"
            raise MultiplexerCommandFailed(
                f"tmux {command} failed: {stderr}", context=context
            )

        return result.stdout

    async def new_session(self, name: str, cols: int, rows: int) -> None:
        await self._run("new-session", "-d", "-s", name, "-x", str(cols), "-y", str(rows))

    async def split_window(self, target: str, direction: SplitDirection) -> str:
        flag = "-h" if direction is SplitDirection.HORIZONTAL else "-v"
        stdout = await self._run(
            "split-window", "-t", target, flag, "-P", "-F", NEW_PANE_FORMAT
        )
        return stdout[0] if stdout else ""

    async def new_window(self, session_name: str, window_name: str) -> str:
        stdout = await self._run(
            "new-window", "-t", session_name, "-n", window_name, "-P", "-F", NEW_PANE_FORMAT
        )
        return stdout[0] if stdout else ""

    async def select_pane(self, target: str, title: str) -> None:
        await self._run("select-pane", "-t", target, "-T", title)

    async def send_keys(self, target: str, text: str) -> None:
        await self._run("send-keys", "-t", target, text, "Enter")

    async def list_panes(
        self, target: str, format: str, all_windows: bool = False
    ) -> str:
        args = ["-s"] if all_windows else []
        stdout = await self._run("list-panes", *args, "-t", target, "-F", format)
        return "\n".join(stdout)

    async def list_sessions(self, format: str) -> str:
        return "\n".join(await self._run("list-sessions", "-F", format))

    async def kill_session(self, name: str) -> None:
        await self._run("kill-session", "-t", name)

    async def display_message(self, target: str, format: str) -> str:
        return "\n".join(await self._run("display-message", "-t", target, "-p", format))

    async def capture_pane(self, target: str, lines: int) -> str:
        return "\n".join(
            await self._run("capture-pane", "-t", target, "-p", "-S", f"-{lines}")
        )
