"""Traffic manager resolving per-step movement conflicts inside a region.

Usage per simulation step::

    traffic = TrafficManager()
    traffic.register_move(agent_a, Direction.RIGHT)
    traffic.register_move(agent_b, Coord(12, 7))
    traffic.set_working_area(agent_c, Coord(20, 20), 3)
    result = traffic.run(region, executor=host_move)

A run self-assigns every agent to its current cell, then, in roster order,
lets each agent whose intent is not yet satisfied look for an augmenting path
(see ``coordinator.augmenting``).  The final assignment is translated into at
most one move command per agent.  All scratch state (movement map, candidate
caches) belongs to that single run; only working areas outlive it.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from config.defaults import DEFAULT_TRAFFIC_MANAGER_PARAMS, TrafficManagerParams
from core.agent import Agent, can_move as default_can_move
from core.grid import Coord, CostProvider, GridSpec
from core.region import Region
from coordinator.augmenting import AugmentingSearch
from coordinator.candidates import CandidateGenerator
from coordinator.intents import IntentRegistry, MoveTarget, WorkingArea
from coordinator.movement_map import MovementMap
from coordinator.resolver import MoveCommand, MoveExecutor, MoveResolver

logger = logging.getLogger(__name__)


@dataclass
class TrafficStepResult:
    """Outcome of resolving one step for one region.

    Attributes
    ----------
    region:
        Name of the resolved region.
    commands:
        Move commands issued, in roster order.
    assignments:
        Final cell of every agent in the roster.
    intents_requested / intents_satisfied:
        Agents that registered an intent, and those whose final cell equals it.
    deepest_chain:
        Longest displacement chain explored during the run.
    """

    region: str
    commands: List[MoveCommand] = field(default_factory=list)
    assignments: Dict[str, Coord] = field(default_factory=dict)
    intents_requested: int = 0
    intents_satisfied: int = 0
    deepest_chain: int = 0

    @property
    def moved_agents(self) -> List[str]:
        return [command.agent_id for command in self.commands]

    @property
    def satisfaction_ratio(self) -> float:
        if self.intents_requested == 0:
            return 1.0
        return self.intents_satisfied / self.intents_requested


class TrafficManager:
    """Collects movement intents and resolves them region by region."""

    def __init__(
        self,
        params: TrafficManagerParams = DEFAULT_TRAFFIC_MANAGER_PARAMS,
        *,
        rng: Optional[random.Random] = None,
        can_move: Callable[[Agent], bool] = default_can_move,
        executor: Optional[MoveExecutor] = None,
    ) -> None:
        self.params = params
        self.grid = GridSpec(params.grid.width)
        self.intents = IntentRegistry(self.grid)
        self.executor = executor
        self._rng = rng or random.Random()
        self._can_move = can_move

    def register_move(self, agent: Agent, target: MoveTarget) -> int:
        return self.intents.register_move(agent, target)

    def set_working_area(self, agent: Agent, center, radius: int) -> WorkingArea:
        return self.intents.set_working_area(agent, center, radius)

    def clear_working_area(self, agent_id: str) -> None:
        self.intents.clear_working_area(agent_id)

    def run(
        self,
        region: Region,
        *,
        costs: Optional[CostProvider] = None,
        movement_cost_threshold: Optional[int] = None,
        executor: Optional[MoveExecutor] = None,
    ) -> TrafficStepResult:
        """Resolve one step for ``region`` and issue the resulting moves."""
        traffic = self.params.traffic
        if region.grid.width != self.grid.width:
            raise ValueError(
                f"Region {region.name!r} is {region.grid.width} wide, "
                f"traffic manager expects {self.grid.width}"
            )
        if traffic.validate_roster:
            duplicates = region.duplicate_agent_ids()
            if duplicates:
                raise ValueError(f"Region {region.name!r} has duplicate agent ids: {duplicates}")

        threshold = _first_not_none(
            movement_cost_threshold,
            region.movement_cost_threshold,
            traffic.movement_cost_threshold,
        )
        movement_map = MovementMap()
        for agent in region.agents:
            movement_map.assign(agent, self.grid.pack(agent.pos))

        candidates = CandidateGenerator(
            self.grid,
            region.terrain,
            self.intents,
            costs=costs if costs is not None else region.costs,
            movement_cost_threshold=threshold,
            rng=self._rng,
            can_move=self._can_move,
        )
        search = AugmentingSearch(movement_map, candidates, self.intents, self.grid)

        requested = 0
        for agent in region.agents:
            intended = self.intents.intended_key(agent.agent_id)
            if intended is None:
                continue
            requested += 1
            if movement_map.matched_key(agent.agent_id) == intended:
                continue
            search.resolve(agent)

        resolver = MoveResolver(self.grid, executor if executor is not None else self.executor)
        commands = resolver.resolve(region.agents, movement_map)

        result = TrafficStepResult(
            region=region.name,
            commands=commands,
            assignments={
                agent_id: self.grid.unpack(key)
                for agent_id, key in movement_map.assignments().items()
            },
            intents_requested=requested,
            intents_satisfied=self._count_satisfied(region.agents, movement_map),
            deepest_chain=search.deepest_chain,
        )

        collisions = movement_map.collisions()
        if collisions:
            logger.warning(f"[TRAFFIC] {region.name}: shared cells after resolution: {collisions}")
        logger.debug(
            f"[TRAFFIC] {region.name}: agents={len(region.agents)} "
            f"intents={result.intents_requested} satisfied={result.intents_satisfied} "
            f"moves={len(commands)} deepest_chain={result.deepest_chain}"
        )

        if traffic.clear_intents_after_run:
            self.intents.clear_intents(region.agent_ids())
        return result

    def run_regions(self, regions: Iterable[Region], **kwargs) -> Dict[str, TrafficStepResult]:
        """Resolve several independent regions, keyed by region name."""
        return {region.name: self.run(region, **kwargs) for region in regions}

    def get_snapshot(self) -> Dict[str, Dict[str, object]]:
        """Pending intents and working areas, e.g. for debugging overlays."""
        return {
            "intents": self.intents.pending_intents(),
            "working_areas": self.intents.working_areas(),
        }

    def clear(self) -> None:
        self.intents.clear_intents()

    def _count_satisfied(self, agents: Iterable[Agent], movement_map: MovementMap) -> int:
        satisfied = 0
        for agent in agents:
            intended = self.intents.intended_key(agent.agent_id)
            if intended is not None and movement_map.matched_key(agent.agent_id) == intended:
                satisfied += 1
        return satisfied


def _first_not_none(*values: Optional[int]) -> int:
    for value in values:
        if value is not None:
            return value
    raise ValueError("No movement cost threshold available")


__all__ = ["TrafficManager", "TrafficStepResult"]
