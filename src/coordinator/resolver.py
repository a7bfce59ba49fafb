"""Turn final cell assignments into single-step move commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from core.agent import Agent
from core.grid import Direction, GridSpec, direction_to
from coordinator.movement_map import MovementMap


@dataclass(frozen=True)
class MoveCommand:
    agent_id: str
    direction: Direction


MoveExecutor = Callable[[MoveCommand], object]


class MoveResolver:
    """Emit one ``MoveCommand`` per agent whose matched cell differs from its position.

    Commands are handed to ``executor`` (the host's move call) in roster order
    and also returned.  Whether a command succeeds is the executor's business.
    """

    def __init__(self, grid: GridSpec, executor: Optional[MoveExecutor] = None) -> None:
        self.grid = grid
        self.executor = executor

    def resolve(self, agents: Iterable[Agent], movement_map: MovementMap) -> List[MoveCommand]:
        commands: List[MoveCommand] = []
        for agent in agents:
            key = movement_map.matched_key(agent.agent_id)
            if key is None:
                continue
            matched = self.grid.unpack(key)
            if matched == agent.pos:
                continue
            command = MoveCommand(agent_id=agent.agent_id, direction=direction_to(agent.pos, matched))
            if self.executor is not None:
                self.executor(command)
            commands.append(command)
        return commands


__all__ = ["MoveCommand", "MoveExecutor", "MoveResolver"]
