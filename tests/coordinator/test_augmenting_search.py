"""Displacement chains found by the augmenting search."""

import random

from core.agent import Agent
from core.grid import Coord, CostMatrix, Direction, GridSpec, TerrainGrid
from coordinator.augmenting import LOSING_SCORE, AugmentingSearch
from coordinator.candidates import CandidateGenerator
from coordinator.intents import IntentRegistry
from coordinator.movement_map import MovementMap

# A single open row (y == 2, x in 1..5) walled in on every side.
CORRIDOR = [
    "#######",
    "#######",
    "#.....#",
    "#######",
    "#######",
    "#######",
    "#######",
]


def _make_search(agents, terrain=None, *, width=10, costs=None, self_assign=True):
    if terrain is None:
        terrain = TerrainGrid(GridSpec(width))
    grid = terrain.grid
    intents = IntentRegistry(grid)
    movement_map = MovementMap()
    if self_assign:
        for agent in agents:
            movement_map.assign(agent, grid.pack(agent.pos))
    candidates = CandidateGenerator(grid, terrain, intents, costs=costs, rng=random.Random(0))
    search = AugmentingSearch(movement_map, candidates, intents, grid)
    return search, intents, movement_map


def _matched(search, agent):
    return search.grid.unpack(search.movement_map.matched_key(agent.agent_id))


def test_swap_resolves_in_one_search():
    a, b = Agent("a", 3, 3), Agent("b", 4, 3)
    search, intents, _ = _make_search([a, b])
    intents.register_move(a, Direction.RIGHT)
    intents.register_move(b, Direction.LEFT)

    assert search.resolve(a)
    assert _matched(search, a) == Coord(4, 3)
    assert _matched(search, b) == Coord(3, 3)
    assert search.deepest_chain == 2


def test_chain_shift_moves_everyone_forward():
    a, b, c = Agent("a", 1, 2), Agent("b", 2, 2), Agent("c", 3, 2)
    search, intents, movement_map = _make_search([a, b, c], TerrainGrid.from_rows(CORRIDOR))
    intents.register_move(a, Direction.RIGHT)
    intents.register_move(b, Direction.RIGHT)

    assert search.resolve(a)
    assert _matched(search, a) == Coord(2, 2)
    assert _matched(search, b) == Coord(3, 2)
    assert _matched(search, c) == Coord(4, 2)
    assert search.deepest_chain == 3
    assert movement_map.collisions() == []
    assert len(movement_map) == 3


def test_unowned_agent_is_a_losing_branch():
    foreign = Agent("foreign", 5, 5, owned=False)
    search, _, _ = _make_search([foreign])
    visited = set()
    assert search.search(foreign, 0, visited) == LOSING_SCORE
    assert visited == {"foreign"}


def test_cannot_displace_through_unowned_agent():
    a, foreign = Agent("a", 3, 3), Agent("foreign", 4, 3, owned=False)
    search, intents, _ = _make_search([a, foreign])
    intents.register_move(a, Direction.RIGHT)

    assert not search.resolve(a)
    assert _matched(search, a) == Coord(3, 3)
    assert _matched(search, foreign) == Coord(4, 3)


def test_non_positive_score_reaches_free_cell_without_commit():
    idle = Agent("idle", 5, 5)
    search, _, movement_map = _make_search([idle], self_assign=False)

    assert search.search(idle, 0) == 0
    assert movement_map.matched_key("idle") is None
    assert len(movement_map) == 0


def test_negative_start_score_is_returned_unchanged():
    idle = Agent("idle", 5, 5)
    search, _, movement_map = _make_search([idle], self_assign=False)
    assert search.search(idle, -1) == -1
    assert len(movement_map) == 0


def test_agent_on_its_own_intent_is_not_displaced():
    a, b = Agent("a", 3, 3), Agent("b", 4, 3)
    search, intents, _ = _make_search([a, b])
    intents.register_move(a, Direction.RIGHT)
    intents.register_move(b, Coord(4, 3))

    assert not search.resolve(a)
    assert _matched(search, a) == Coord(3, 3)
    assert _matched(search, b) == Coord(4, 3)


def test_blocked_chain_falls_back_to_original_cell():
    grid = GridSpec(7)
    costs = CostMatrix(grid)
    # b may not step back into a's cell.
    costs.set(1, 2, 255)
    a = Agent("a", 1, 2)
    b = Agent("b", 2, 2)
    c = Agent("c", 3, 2, move_parts=0)
    search, intents, movement_map = _make_search(
        [a, b, c], TerrainGrid.from_rows(CORRIDOR), costs=costs
    )
    intents.register_move(a, Direction.RIGHT)

    assert not search.resolve(a)
    assert _matched(search, a) == Coord(1, 2)
    assert _matched(search, b) == Coord(2, 2)
    assert _matched(search, c) == Coord(3, 2)
    assert movement_map.collisions() == []


def test_free_intent_cell_commits_immediately():
    a = Agent("a", 5, 5)
    search, intents, movement_map = _make_search([a])
    intents.register_move(a, Direction.BOTTOM_LEFT)

    assert search.resolve(a)
    assert _matched(search, a) == Coord(4, 6)
    assert not movement_map.is_occupied(search.grid.pack(Coord(5, 5)))
    assert search.deepest_chain == 1
