"""Seeded multi-step traffic scenarios.

``generate_scenario`` scatters walls, swamps, agents, and one goal per agent
on a square region; ``run_scenario`` drives the traffic manager for a number
of steps, letting every agent request a greedy step toward its goal and
handing it a fresh goal once reached.  Both are reproducible from the seed.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config.defaults import DEFAULT_SCENARIO_DEFAULTS, GridDefaults, ScenarioDefaults, TrafficManagerParams
from core.agent import Agent, can_move
from core.grid import (
    DIRECTION_DELTA,
    TERRAIN_SWAMP,
    TERRAIN_WALL,
    Coord,
    Direction,
    GridSpec,
    TerrainGrid,
    chebyshev_range,
)
from coordinator.traffic_manager import TrafficManager
from simulation.grid_world import GridWorld

logger = logging.getLogger(__name__)


@dataclass
class Scenario:
    world: GridWorld
    goals: Dict[str, Coord]
    config: ScenarioDefaults
    rng: random.Random = field(repr=False, default_factory=random.Random)

    def free_cells(self) -> List[Coord]:
        grid = self.world.grid
        return [
            coord
            for coord in self.world.terrain.walkable_cells()
            if grid.is_interior(coord)
        ]


@dataclass(frozen=True)
class StepMetrics:
    step: int
    intents_requested: int
    intents_satisfied: int
    moves: int
    goals_reached: int
    deepest_chain: int
    collisions: int


def generate_scenario(config: ScenarioDefaults = DEFAULT_SCENARIO_DEFAULTS) -> Scenario:
    """Create a reproducible region with agents and goals."""
    rng = random.Random(config.seed)
    grid = GridSpec(config.width)
    terrain = TerrainGrid(grid)

    interior = [
        Coord(x, y)
        for y in range(1, config.width - 1)
        for x in range(1, config.width - 1)
    ]
    rng.shuffle(interior)

    n_walls = int(len(interior) * config.wall_density)
    n_swamps = int(len(interior) * config.swamp_density)
    if n_walls + n_swamps + config.num_agents > len(interior):
        raise ValueError(
            f"{config.num_agents} agents do not fit a {config.width}x{config.width} region "
            f"with {n_walls} walls"
        )

    for coord in interior[:n_walls]:
        terrain.set(coord.x, coord.y, TERRAIN_WALL)
    for coord in interior[n_walls:n_walls + n_swamps]:
        terrain.set(coord.x, coord.y, TERRAIN_SWAMP)

    world = GridWorld(terrain, name=f"scenario-{config.seed}", swamp_fatigue=config.swamp_fatigue)
    open_cells = interior[n_walls:]
    for index, coord in enumerate(open_cells[:config.num_agents]):
        world.add_agent(Agent(agent_id=f"agent-{index}", x=coord.x, y=coord.y))

    scenario = Scenario(world=world, goals={}, config=config, rng=rng)
    cells = scenario.free_cells()
    for agent_id in world.agents:
        scenario.goals[agent_id] = rng.choice(cells)
    return scenario


def greedy_step(world: GridWorld, agent: Agent, goal: Coord) -> Optional[Direction]:
    """Non-wall neighbour direction that gets closest to ``goal``, if any improves."""
    best: Optional[Direction] = None
    best_range = chebyshev_range(agent.pos, goal)
    for direction, delta in DIRECTION_DELTA.items():
        target = Coord(agent.x + delta.x, agent.y + delta.y)
        if not world.grid.is_interior(target) or world.terrain.is_wall(target.x, target.y):
            continue
        distance = chebyshev_range(target, goal)
        if distance < best_range:
            best, best_range = direction, distance
    return best


def run_scenario(
    scenario: Scenario,
    steps: Optional[int] = None,
    *,
    traffic: Optional[TrafficManager] = None,
    working_radius: Optional[int] = None,
) -> List[StepMetrics]:
    """Drive ``scenario`` for ``steps`` steps and collect per-step metrics.

    Agents sitting on their goal register no intent; with ``working_radius``
    set they keep that goal as working area so displacement keeps them close.
    """
    world = scenario.world
    if traffic is None:
        params = TrafficManagerParams(grid=GridDefaults(width=world.grid.width))
        traffic = TrafficManager(params, rng=random.Random(scenario.config.seed))

    metrics: List[StepMetrics] = []
    for step in range(steps if steps is not None else scenario.config.steps):
        for agent in world.agents.values():
            goal = scenario.goals[agent.agent_id]
            if agent.pos == goal:
                if working_radius is not None:
                    traffic.set_working_area(agent, goal, working_radius)
                continue
            if not can_move(agent):
                continue
            direction = greedy_step(world, agent, goal)
            if direction is not None:
                traffic.register_move(agent, direction)

        result = traffic.run(world.region(), executor=world.execute)
        world.tick()

        reached = 0
        cells = scenario.free_cells()
        for agent in world.agents.values():
            if agent.pos == scenario.goals[agent.agent_id]:
                reached += 1
                if working_radius is None:
                    scenario.goals[agent.agent_id] = scenario.rng.choice(cells)

        metrics.append(
            StepMetrics(
                step=step,
                intents_requested=result.intents_requested,
                intents_satisfied=result.intents_satisfied,
                moves=len(result.commands),
                goals_reached=reached,
                deepest_chain=result.deepest_chain,
                collisions=len(world.collisions()),
            )
        )
        logger.debug(f"[SCENARIO] step {step}: {metrics[-1]}")
    return metrics


__all__ = ["Scenario", "StepMetrics", "generate_scenario", "greedy_step", "run_scenario"]
