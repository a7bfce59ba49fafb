"""Reference execution collaborator for move commands.

``GridWorld`` plays the host engine's part: it owns the agents' physical
positions, accepts the ``MoveCommand``s issued by the traffic manager, and
applies all accepted moves of a step simultaneously on ``tick()``.  Commands
that would leave the grid, enter a wall, or move an agent that cannot move
are rejected and recorded, never raised.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.agent import Agent, can_move
from core.grid import DIRECTION_DELTA, TERRAIN_SWAMP, Coord, GridSpec, TerrainGrid
from core.region import Region
from coordinator.resolver import MoveCommand


class GridWorld:
    """Physical agent positions on one region's terrain."""

    def __init__(self, terrain: TerrainGrid, *, name: str = "world", swamp_fatigue: int = 2) -> None:
        self.name = name
        self.terrain = terrain
        self.grid: GridSpec = terrain.grid
        self.swamp_fatigue = swamp_fatigue
        self.agents: Dict[str, Agent] = {}
        self.tick_count = 0
        self._pending: Dict[str, Coord] = {}
        self.rejected: List[MoveCommand] = []

    def add_agent(self, agent: Agent) -> Agent:
        if agent.agent_id in self.agents:
            raise ValueError(f"Agent id {agent.agent_id!r} already present")
        if not self.grid.in_bounds(agent.pos):
            raise ValueError(f"Agent {agent.agent_id!r} placed outside the grid at {tuple(agent.pos)}")
        if self.terrain.is_wall(agent.x, agent.y):
            raise ValueError(f"Agent {agent.agent_id!r} placed on a wall at {tuple(agent.pos)}")
        if self.agent_at(agent.pos) is not None:
            raise ValueError(f"Cell {tuple(agent.pos)} already occupied")
        self.agents[agent.agent_id] = agent
        return agent

    def agent_at(self, coord: Coord) -> Optional[Agent]:
        for agent in self.agents.values():
            if agent.pos == coord:
                return agent
        return None

    def region(self) -> Region:
        return Region(
            name=self.name,
            grid=self.grid,
            terrain=self.terrain,
            agents=list(self.agents.values()),
        )

    def execute(self, command: MoveCommand) -> bool:
        """Queue ``command`` for the next ``tick``; False if it was rejected."""
        agent = self.agents.get(command.agent_id)
        if agent is None or not can_move(agent):
            self.rejected.append(command)
            return False
        delta = DIRECTION_DELTA[command.direction]
        target = Coord(agent.x + delta.x, agent.y + delta.y)
        if not self.grid.in_bounds(target) or self.terrain.is_wall(target.x, target.y):
            self.rejected.append(command)
            return False
        self._pending[agent.agent_id] = target
        return True

    def tick(self) -> List[Tuple[str, Coord]]:
        """Recover one point of fatigue, then apply queued moves at once."""
        for agent in self.agents.values():
            if agent.fatigue > 0:
                agent.fatigue -= 1

        applied: List[Tuple[str, Coord]] = []
        for agent_id, target in self._pending.items():
            agent = self.agents[agent_id]
            agent.move_to(target)
            if self.terrain.get(target.x, target.y) == TERRAIN_SWAMP:
                agent.fatigue += self.swamp_fatigue
            applied.append((agent_id, target))
        self._pending.clear()
        self.tick_count += 1
        return applied

    def collisions(self) -> List[Coord]:
        counts = Counter(agent.pos for agent in self.agents.values())
        return sorted(coord for coord, count in counts.items() if count > 1)

    def occupancy(self) -> np.ndarray:
        counts = np.zeros((self.grid.width, self.grid.width), dtype=np.int32)
        for agent in self.agents.values():
            counts[agent.y, agent.x] += 1
        return counts


__all__ = ["GridWorld"]
