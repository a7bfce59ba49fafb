"""Candidate cells an agent may occupy at the end of the current step.

For each agent the generator produces an ordered list of packed cell keys,
computed once per run and memoized by agent id:

1. an agent that cannot move this step gets no candidates;
2. an agent with a registered intent gets exactly its intended cell (the
   engine never looks for detours toward an unreachable intent);
3. every other agent gets its valid neighbours in a uniformly shuffled order,
   with cells outside its working area demoted to the end of the list.

A neighbour is valid when it lies inside the grid but off the outer safety
ring, is not a wall, and (when a cost provider is supplied) costs strictly
less than the movement cost threshold.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Optional

from core.agent import Agent, can_move as default_can_move
from core.grid import DIRECTION_DELTA, Coord, CostProvider, GridSpec, TerrainProvider, TERRAIN_WALL
from coordinator.intents import IntentRegistry

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """Memoized per-run candidate lists."""

    def __init__(
        self,
        grid: GridSpec,
        terrain: TerrainProvider,
        intents: IntentRegistry,
        *,
        costs: Optional[CostProvider] = None,
        movement_cost_threshold: int = 255,
        rng: Optional[random.Random] = None,
        can_move: Callable[[Agent], bool] = default_can_move,
    ) -> None:
        if movement_cost_threshold < 0:
            raise ValueError(
                f"movement_cost_threshold must be >= 0, got {movement_cost_threshold}"
            )
        self.grid = grid
        self.terrain = terrain
        self.intents = intents
        self.costs = costs
        self.movement_cost_threshold = movement_cost_threshold
        self._rng = rng or random.Random()
        self._can_move = can_move
        self._moves: Dict[str, List[int]] = {}
        self._mobility: Dict[str, bool] = {}

    def can_move(self, agent: Agent) -> bool:
        cached = self._mobility.get(agent.agent_id)
        if cached is None:
            cached = bool(self._can_move(agent))
            self._mobility[agent.agent_id] = cached
        return cached

    def possible_moves(self, agent: Agent) -> List[int]:
        cached = self._moves.get(agent.agent_id)
        if cached is not None:
            return cached

        moves = self._compute_moves(agent)
        self._moves[agent.agent_id] = moves
        return moves

    def is_valid_move(self, coord: Coord) -> bool:
        if not self.grid.in_bounds(coord):
            return False
        if self.terrain.get(coord.x, coord.y) == TERRAIN_WALL:
            return False
        if self.grid.is_edge(coord):
            return False
        if self.costs is not None and self.costs.get(coord.x, coord.y) >= self.movement_cost_threshold:
            return False
        return True

    def _compute_moves(self, agent: Agent) -> List[int]:
        if not self.can_move(agent):
            return []

        intended = self.intents.intended_key(agent.agent_id)
        if intended is not None:
            return [intended]

        deltas = list(DIRECTION_DELTA.values())
        self._rng.shuffle(deltas)

        working_area = self.intents.working_area(agent.agent_id)
        inside: List[int] = []
        outside: List[int] = []
        for delta in deltas:
            coord = Coord(agent.x + delta.x, agent.y + delta.y)
            if not self.is_valid_move(coord):
                continue
            if working_area is not None and not working_area.contains(coord):
                outside.append(self.grid.pack(coord))
            else:
                inside.append(self.grid.pack(coord))

        if outside:
            logger.debug(
                f"[CANDIDATES] {agent.agent_id}: {len(outside)} cell(s) outside working area demoted"
            )
        return inside + outside


__all__ = ["CandidateGenerator"]
