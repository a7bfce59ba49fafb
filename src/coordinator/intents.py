"""Per-step movement requests and persistent working-area preferences.

Callers register at most one intended cell per agent before a resolution run.
A direction is resolved against the agent's current cell (clamped to the grid),
an absolute cell is stored as given; neither is checked for adjacency.  A later
registration for the same agent in the same step replaces the earlier one.

Working areas are soft preferences for agents *without* an explicit intent:
they only reorder the candidate list and persist across steps until replaced
or cleared.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from core.agent import Agent
from core.grid import Coord, Direction, GridSpec, as_coord, chebyshev_range, direction_target

MoveTarget = Union[Direction, int, Coord, tuple]


@dataclass(frozen=True)
class WorkingArea:
    center: Coord
    radius: int

    def __post_init__(self) -> None:
        if self.radius < 0:
            raise ValueError(f"Working area radius must be >= 0, got {self.radius}")

    def contains(self, coord: Coord) -> bool:
        return chebyshev_range(self.center, coord) <= self.radius


class IntentRegistry:
    """Intended cells (this step) and working areas (until overwritten)."""

    def __init__(self, grid: GridSpec) -> None:
        self.grid = grid
        self._intents: Dict[str, int] = {}
        self._working_areas: Dict[str, WorkingArea] = {}

    def register_move(self, agent: Agent, target: MoveTarget) -> int:
        """Record ``agent``'s intended cell and return its packed key."""
        if isinstance(target, (Direction, int)) and not isinstance(target, bool):
            coord = direction_target(agent.pos, Direction(target), self.grid)
        else:
            coord = as_coord(target)
        key = self.grid.pack(coord)
        self._intents[agent.agent_id] = key
        return key

    def set_working_area(self, agent: Agent, center, radius: int) -> WorkingArea:
        area = WorkingArea(center=as_coord(center), radius=int(radius))
        self._working_areas[agent.agent_id] = area
        return area

    def clear_working_area(self, agent_id: str) -> None:
        self._working_areas.pop(agent_id, None)

    def intended_key(self, agent_id: str) -> Optional[int]:
        return self._intents.get(agent_id)

    def has_intent(self, agent_id: str) -> bool:
        return agent_id in self._intents

    def working_area(self, agent_id: str) -> Optional[WorkingArea]:
        return self._working_areas.get(agent_id)

    def working_areas(self) -> Dict[str, WorkingArea]:
        return dict(self._working_areas)

    def pending_intents(self) -> Dict[str, Coord]:
        return {agent_id: self.grid.unpack(key) for agent_id, key in self._intents.items()}

    def clear_intents(self, agent_ids: Optional[Iterable[str]] = None) -> None:
        if agent_ids is None:
            self._intents.clear()
            return
        for agent_id in agent_ids:
            self._intents.pop(agent_id, None)

    def __len__(self) -> int:
        return len(self._intents)


__all__ = ["IntentRegistry", "MoveTarget", "WorkingArea"]
