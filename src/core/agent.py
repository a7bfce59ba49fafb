"""
Mobile agent records
====================
Long-lived description of a unit that the traffic coordinator may move.

Design notes:
    - ``Agent`` only stores persistent state (identity, position, composition)
    - Per-step scratch data (matched cell, candidate cache, capability cache)
      lives in side tables owned by a single resolution run, never on the agent
    - Movement capability is a predicate over the agent so callers can swap in
      their own rule (``can_move`` is the default)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.grid import Coord


class AgentKind(Enum):
    """
    Agent composition classes

        UNIT: mobility depends on fatigue and on having movement parts
        HERO: always mobile (no fatigue, no body composition)
    """

    UNIT = "unit"
    HERO = "hero"


@dataclass
class Agent:
    """
    A unit sharing a region grid with other units.

    Attributes:
        agent_id: stable identity, unique within one resolution run
        x, y: current cell
        kind: composition class, see ``AgentKind``
        fatigue: remaining exhaustion; a fatigued UNIT cannot move this step
        move_parts: number of movement parts; zero means the UNIT is immobile
        owned: commandability flag; the coordinator never moves foreign agents
    """

    agent_id: str
    x: int
    y: int
    kind: AgentKind = AgentKind.UNIT
    fatigue: int = 0
    move_parts: int = 1
    owned: bool = True

    @property
    def pos(self) -> Coord:
        return Coord(self.x, self.y)

    def move_to(self, coord: Coord) -> None:
        self.x, self.y = coord.x, coord.y

    def __repr__(self) -> str:
        return f"Agent({self.agent_id!r} @ ({self.x}, {self.y}))"


def can_move(agent: Agent) -> bool:
    """Default movement-capability predicate."""
    if agent.kind == AgentKind.HERO:
        return True
    if agent.fatigue > 0:
        return False
    return agent.move_parts > 0


def create_agent(
    agent_id: str,
    x: int,
    y: int,
    *,
    kind: AgentKind = AgentKind.UNIT,
    fatigue: int = 0,
    move_parts: int = 1,
    owned: bool = True,
) -> Agent:
    """Factory mirroring the dataclass constructor with keyword-only extras."""
    return Agent(
        agent_id=agent_id,
        x=x,
        y=y,
        kind=kind,
        fatigue=fatigue,
        move_parts=move_parts,
        owned=owned,
    )


__all__ = ["Agent", "AgentKind", "can_move", "create_agent"]
