"""
Layout planning for agent sessions.

A plan is an ordered list of :class:`LayoutOp` computed from the number of
agents. Each operation addresses panes created by the operations before it,
so a plan must be applied strictly in order.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_MAX_AGENTS = 10


class OpKind(Enum):
    """Kind of layout operation."""

    SPLIT = "split"
    NEW_WINDOW = "new_window"


class SplitDirection(Enum):
    """Direction of a pane split, matching tmux ``-h``/``-v``."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class LayoutOp:
    """One step of a layout plan.

    ``target`` is ``None`` for the session itself or ``"W.P"`` for
    window ``W`` pane ``P``.
    """

    kind: OpKind
    target: str | None = None
    direction: SplitDirection | None = None
    window_name: str | None = None

    def address(self, session_name: str) -> str:
        """Return the tmux target string for this operation."""
        if self.target is None:
            return session_name
        return f"{session_name}:{self.target}"

    def describe(self) -> str:
        if self.kind is OpKind.NEW_WINDOW:
            return f"new_window({self.window_name})"
        return f"split({self.target or 'root'}, {self.direction.value})"


def split(target: str | None, direction: SplitDirection) -> LayoutOp:
    return LayoutOp(kind=OpKind.SPLIT, target=target, direction=direction)


def new_window(name: str) -> LayoutOp:
    return LayoutOp(kind=OpKind.NEW_WINDOW, window_name=name)


_H = SplitDirection.HORIZONTAL
_V = SplitDirection.VERTICAL

# 2x2 grid: left/right, then split each column
_GRID_4 = (split(None, _H), split("0.0", _V), split("0.2", _V))

# 2x3 grid: left/right, then three rows per column
_GRID_6 = (
    split(None, _H),
    split("0.0", _V),
    split("0.1", _V),
    split("0.3", _V),
    split("0.4", _V),
)


class LayoutPlanner:
    """Maps an agent count to an ordered list of layout operations.

    Up to six agents share one window in a grid. Larger teams get one
    window per agent, capped at ``max_agents`` windows in total.
    """

    def __init__(self, max_agents: int = DEFAULT_MAX_AGENTS):
        if max_agents < 1:
            raise ValueError("max_agents must be at least 1")
        self.max_agents = max_agents

    def plan(self, agent_count: int) -> list[LayoutOp]:
        """Compute the layout plan for ``agent_count`` agents.

        Non-positive counts yield an empty plan.
        """
        if agent_count <= 0:
            return []
        if agent_count <= 2:
            return [split(None, _H)]
        if agent_count <= 4:
            return list(_GRID_4)
        if agent_count <= 6:
            return list(_GRID_6)
        return [
            new_window(f"agent-{i}")
            for i in range(1, min(agent_count, self.max_agents))
        ]

    def capacity(self, agent_count: int) -> int:
        """Number of agents the plan for ``agent_count`` gives a pane."""
        if agent_count <= 0:
            return 0
        if agent_count <= 6:
            return agent_count
        return min(agent_count, self.max_agents)

    def unplaced_agents(self, agent_count: int) -> int:
        """Number of agents left without a pane by the cap."""
        return max(agent_count, 0) - self.capacity(agent_count)


def plan(agent_count: int) -> list[LayoutOp]:
    """Plan a layout with the default cap."""
    return LayoutPlanner().plan(agent_count)
