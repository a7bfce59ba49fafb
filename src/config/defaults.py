"""Tunable grid, traffic, and scenario defaults.

The traffic manager reads its knobs from ``TrafficManagerParams``; scripts and
tests pick scenarios from ``SCENARIO_PRESETS``.  Everything is a frozen
dataclass, so variants are made with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class GridDefaults:
    """Geometry of a square region.

    The outermost ring of cells is always a safety margin (see
    ``core.grid.EDGE_MARGIN``) and is not configurable here.
    """

    width: int = 50


@dataclass(frozen=True)
class TrafficDefaults:
    """Knobs steering a single traffic-resolution run."""

    # Cells whose cost is >= this value are never generated as candidates.
    movement_cost_threshold: int = 255
    # Reject rosters with repeated agent ids before any work is done.
    validate_roster: bool = True
    # Intents are single-step requests; drop them once the run consumed them.
    clear_intents_after_run: bool = True


@dataclass(frozen=True)
class TrafficManagerParams:
    """Bundle of configuration blocks used by ``TrafficManager``."""

    grid: GridDefaults = field(default_factory=GridDefaults)
    traffic: TrafficDefaults = field(default_factory=TrafficDefaults)


@dataclass(frozen=True)
class ScenarioDefaults:
    """Baseline multi-step simulation scenario used by scripts and tests."""

    width: int = 20
    num_agents: int = 30
    wall_density: float = 0.1
    seed: int = 42
    steps: int = 50
    swamp_density: float = 0.0
    swamp_fatigue: int = 2


DEFAULT_GRID_DEFAULTS = GridDefaults()
DEFAULT_TRAFFIC_DEFAULTS = TrafficDefaults()
DEFAULT_TRAFFIC_MANAGER_PARAMS = TrafficManagerParams()
DEFAULT_SCENARIO_DEFAULTS = ScenarioDefaults()
SCENARIO_PRESETS: Dict[str, ScenarioDefaults] = {
    "small": ScenarioDefaults(width=12, num_agents=10, wall_density=0.05, seed=7, steps=30),
    "medium": DEFAULT_SCENARIO_DEFAULTS,
    "dense": ScenarioDefaults(width=20, num_agents=120, wall_density=0.1, seed=11, steps=60),
    "swampy": ScenarioDefaults(
        width=30,
        num_agents=60,
        wall_density=0.08,
        seed=17,
        steps=80,
        swamp_density=0.15,
    ),
}
