"""Displacement search that frees an agent's intended cell.

For every agent whose matched cell differs from its intent the engine looks
for an augmenting path: a chain of agents, each stepping into a cell vacated
by the next one, that ends on an unoccupied cell.  The search is greedy and
depth-first (empty cells before occupied ones, candidate order otherwise
as produced by ``CandidateGenerator``) and takes the first chain that scores
positively; it is not a maximum-cardinality matching.

Scoring
-------
* ``+1`` when an agent tries its own intended cell.
* ``-1`` before displacing an occupant that already sits on *its* intent.
* A chain commits only if it reaches an unoccupied cell with a positive
  score; every agent on the chain then takes the cell it tried.  Reaching an
  unoccupied cell with ``score <= 0`` returns that score without claiming
  the cell.
* ``LOSING_SCORE`` (negative infinity) marks a dead branch: a foreign agent or
  exhausted candidates.  It never compares greater than a real score.

Score adjustments accumulate across the candidates tried by one agent.

Agents already on the current chain are skipped, so the chain depth is
bounded by the number of agents in the region.  The search runs on an
explicit stack of frames; chain depth is independent of the interpreter
recursion limit.

Precondition: agent ids are unique within one run; the visited set keys on
them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from core.agent import Agent
from core.grid import GridSpec
from coordinator.candidates import CandidateGenerator
from coordinator.intents import IntentRegistry
from coordinator.movement_map import MovementMap

logger = logging.getLogger(__name__)

LOSING_SCORE = float("-inf")


@dataclass
class _Frame:
    """One agent on the chain currently being explored."""

    agent: Agent
    score: int
    moves: List[int]
    index: int = 0
    pending_key: Optional[int] = None


class AugmentingSearch:
    """Per-run displacement search over a shared ``MovementMap``."""

    def __init__(
        self,
        movement_map: MovementMap,
        candidates: CandidateGenerator,
        intents: IntentRegistry,
        grid: GridSpec,
    ) -> None:
        self.movement_map = movement_map
        self.candidates = candidates
        self.intents = intents
        self.grid = grid
        self.deepest_chain = 0

    def resolve(self, agent: Agent) -> bool:
        """Try to move ``agent`` onto its intended cell; stay put on failure."""
        self.movement_map.release(agent)
        result = self.search(agent, 0)
        if result > 0:
            return True

        self.movement_map.assign(agent, self.grid.pack(agent.pos))
        logger.debug(f"[SEARCH] {agent.agent_id}: no augmenting path (score={result})")
        return False

    def search(self, agent: Agent, score: int = 0, visited: Optional[Set[str]] = None) -> float:
        """Run the displacement search rooted at ``agent``.

        Returns the positive score of the committed chain, the non-positive
        score of an uncommitted free cell, or ``LOSING_SCORE``.
        """
        if visited is None:
            visited = set()
        stack: List[_Frame] = []
        result = self._enter(agent, score, visited, stack)

        while stack:
            frame = stack[-1]
            if result is not None:
                # The frame above ``frame`` just finished with ``result``.
                if result > 0:
                    self.movement_map.assign(frame.agent, frame.pending_key)
                    stack.pop()
                    continue
                frame.pending_key = None
            result = self._advance(frame, visited, stack)

        return result

    def _enter(self, agent: Agent, score: int, visited: Set[str], stack: List[_Frame]) -> Optional[float]:
        visited.add(agent.agent_id)
        if not agent.owned:
            return LOSING_SCORE

        empty: List[int] = []
        occupied: List[int] = []
        for key in self.candidates.possible_moves(agent):
            if self.movement_map.is_occupied(key):
                occupied.append(key)
            else:
                empty.append(key)

        stack.append(_Frame(agent=agent, score=score, moves=empty + occupied))
        self.deepest_chain = max(self.deepest_chain, len(stack))
        return None

    def _advance(self, frame: _Frame, visited: Set[str], stack: List[_Frame]) -> Optional[float]:
        """Try the next candidates of ``frame`` until it finishes or descends."""
        intended = self.intents.intended_key(frame.agent.agent_id)

        while frame.index < len(frame.moves):
            key = frame.moves[frame.index]
            frame.index += 1

            if intended == key:
                frame.score += 1

            occupant = self.movement_map.occupant(key)
            if occupant is None:
                if frame.score > 0:
                    self.movement_map.assign(frame.agent, key)
                stack.pop()
                return frame.score

            if occupant.agent_id in visited:
                continue

            if self.intents.intended_key(occupant.agent_id) == key:
                frame.score -= 1
            frame.pending_key = key
            return self._enter(occupant, frame.score, visited, stack)

        stack.pop()
        return LOSING_SCORE


__all__ = ["AugmentingSearch", "LOSING_SCORE"]
