"""Independent grid regions and their rosters."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from core.agent import Agent
from core.grid import CostProvider, GridSpec, TerrainProvider


@dataclass
class Region:
    """One square area resolved in isolation from every other region.

    Regions share no mutable state, so an outer caller may resolve several of
    them in parallel.  ``costs`` and ``movement_cost_threshold`` are optional
    per-region overrides for the traffic manager defaults.
    """

    name: str
    grid: GridSpec
    terrain: TerrainProvider
    agents: List[Agent] = field(default_factory=list)
    costs: Optional[CostProvider] = None
    movement_cost_threshold: Optional[int] = None

    def agent_ids(self) -> List[str]:
        return [agent.agent_id for agent in self.agents]

    def duplicate_agent_ids(self) -> List[str]:
        counts = Counter(self.agent_ids())
        return sorted(agent_id for agent_id, count in counts.items() if count > 1)


__all__ = ["Region"]
