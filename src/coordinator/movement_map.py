"""Transient cell -> agent assignment table for one resolution run.

The map and its companion side table (agent id -> matched cell) are rebuilt
from scratch for every run and discarded afterwards, so nothing computed for
one step can leak into the next.  ``assign`` keeps both tables in agreement:
an agent is registered on exactly one cell and a cell holds at most one agent.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from core.agent import Agent


class MovementMap:
    """Packed cell key -> agent currently matched to it."""

    def __init__(self) -> None:
        self._occupants: Dict[int, Agent] = {}
        self._matched: Dict[str, int] = {}

    def assign(self, agent: Agent, key: int) -> None:
        previous = self._matched.get(agent.agent_id)
        if previous is not None and previous != key:
            if self._occupants.get(previous) is agent:
                del self._occupants[previous]
        self._occupants[key] = agent
        self._matched[agent.agent_id] = key

    def release(self, agent: Agent) -> Optional[int]:
        """Free ``agent``'s matched cell and forget the match."""
        key = self._matched.pop(agent.agent_id, None)
        if key is not None and self._occupants.get(key) is agent:
            del self._occupants[key]
        return key

    def occupant(self, key: int) -> Optional[Agent]:
        return self._occupants.get(key)

    def is_occupied(self, key: int) -> bool:
        return key in self._occupants

    def matched_key(self, agent_id: str) -> Optional[int]:
        return self._matched.get(agent_id)

    def assignments(self) -> Dict[str, int]:
        return dict(self._matched)

    def collisions(self) -> List[Tuple[int, List[str]]]:
        """Cells claimed by more than one agent id (empty while the invariant holds)."""
        claims: Dict[int, List[str]] = {}
        for agent_id, key in self._matched.items():
            claims.setdefault(key, []).append(agent_id)
        return [(key, ids) for key, ids in claims.items() if len(ids) > 1]

    def __contains__(self, key: object) -> bool:
        return key in self._occupants

    def __len__(self) -> int:
        return len(self._occupants)

    def __iter__(self) -> Iterator[int]:
        return iter(self._occupants)


__all__ = ["MovementMap"]
