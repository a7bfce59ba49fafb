"""End-to-end runs of the traffic manager over a region."""

import random

import pytest

from config.defaults import GridDefaults, TrafficDefaults, TrafficManagerParams
from core.agent import Agent
from core.grid import Coord, CostMatrix, Direction, GridSpec, TerrainGrid, chebyshev_range
from core.region import Region
from coordinator.resolver import MoveCommand
from coordinator.traffic_manager import TrafficManager

CORRIDOR = [
    "#######",
    "#######",
    "#.....#",
    "#######",
    "#######",
    "#######",
    "#######",
]


def _make_manager(width: int = 10, seed: int = 0, **traffic_kwargs) -> TrafficManager:
    params = TrafficManagerParams(
        grid=GridDefaults(width=width),
        traffic=TrafficDefaults(**traffic_kwargs),
    )
    return TrafficManager(params, rng=random.Random(seed))


def _make_region(agents, terrain=None, *, width: int = 10, name: str = "room", **kwargs) -> Region:
    if terrain is None:
        terrain = TerrainGrid(GridSpec(width))
    return Region(name=name, grid=terrain.grid, terrain=terrain, agents=list(agents), **kwargs)


def test_run_without_intents_keeps_everyone_in_place():
    agents = [Agent("a", 2, 2), Agent("b", 3, 2), Agent("c", 7, 7)]
    traffic = _make_manager()
    result = traffic.run(_make_region(agents))

    assert result.commands == []
    assert result.assignments == {agent.agent_id: agent.pos for agent in agents}
    assert result.intents_requested == 0
    assert result.satisfaction_ratio == 1.0


def test_distinct_free_intents_are_all_satisfied():
    agents = [Agent("a", 2, 2), Agent("b", 5, 5), Agent("c", 7, 3)]
    traffic = _make_manager()
    traffic.register_move(agents[0], Direction.RIGHT)
    traffic.register_move(agents[1], Direction.TOP_LEFT)
    traffic.register_move(agents[2], Coord(7, 4))

    result = traffic.run(_make_region(agents))

    assert result.assignments == {"a": Coord(3, 2), "b": Coord(4, 4), "c": Coord(7, 4)}
    assert result.intents_requested == 3
    assert result.intents_satisfied == 3
    assert result.commands == [
        MoveCommand("a", Direction.RIGHT),
        MoveCommand("b", Direction.TOP_LEFT),
        MoveCommand("c", Direction.BOTTOM),
    ]
    assert result.moved_agents == ["a", "b", "c"]


def test_swap_scenario():
    a, b = Agent("a", 5, 1), Agent("b", 6, 1)
    traffic = _make_manager()
    traffic.register_move(a, Direction.RIGHT)
    traffic.register_move(b, Direction.LEFT)

    result = traffic.run(_make_region([a, b]))

    assert result.assignments == {"a": Coord(6, 1), "b": Coord(5, 1)}
    assert result.intents_satisfied == 2
    assert result.commands == [MoveCommand("a", Direction.RIGHT), MoveCommand("b", Direction.LEFT)]


def test_chain_shift_scenario():
    a, b, c = Agent("a", 1, 2), Agent("b", 2, 2), Agent("c", 3, 2)
    traffic = _make_manager(width=7)
    traffic.register_move(a, Direction.RIGHT)
    traffic.register_move(b, Direction.RIGHT)

    result = traffic.run(_make_region([a, b, c], TerrainGrid.from_rows(CORRIDOR)))

    assert result.assignments == {"a": Coord(2, 2), "b": Coord(3, 2), "c": Coord(4, 2)}
    assert [command.direction for command in result.commands] == [Direction.RIGHT] * 3
    assert result.deepest_chain == 3


def test_stationary_fallback_when_no_path_exists():
    grid = GridSpec(7)
    costs = CostMatrix(grid)
    costs.set(1, 2, 255)
    a = Agent("a", 1, 2)
    b = Agent("b", 2, 2)
    c = Agent("c", 3, 2, move_parts=0)
    traffic = _make_manager(width=7)
    traffic.register_move(a, Direction.RIGHT)

    result = traffic.run(_make_region([a, b, c], TerrainGrid.from_rows(CORRIDOR), costs=costs))

    assert result.commands == []
    assert result.assignments == {"a": Coord(1, 2), "b": Coord(2, 2), "c": Coord(3, 2)}
    assert result.intents_requested == 1
    assert result.intents_satisfied == 0
    assert result.satisfaction_ratio == 0.0


def test_threshold_argument_overrides_region_value():
    grid = GridSpec(7)
    costs = CostMatrix(grid)
    costs.set(2, 2, 255)
    costs.set(4, 2, 10)
    terrain = TerrainGrid.from_rows(CORRIDOR)
    a, b = Agent("a", 2, 2), Agent("b", 3, 2)
    region = _make_region([a, b], terrain, costs=costs, movement_cost_threshold=10)
    traffic = _make_manager(width=7)

    traffic.register_move(a, Direction.RIGHT)
    blocked = traffic.run(region)
    assert blocked.commands == []

    traffic.register_move(a, Direction.RIGHT)
    shifted = traffic.run(region, movement_cost_threshold=11)
    assert shifted.assignments == {"a": Coord(3, 2), "b": Coord(4, 2)}
    assert shifted.moved_agents == ["a", "b"]


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_random_dense_region_never_shares_cells(seed):
    rng = random.Random(seed)
    width = 12
    grid = GridSpec(width)
    terrain = TerrainGrid(grid)
    interior = [Coord(x, y) for y in range(1, width - 1) for x in range(1, width - 1)]
    rng.shuffle(interior)
    agents = [Agent(f"agent-{i}", cell.x, cell.y) for i, cell in enumerate(interior[:70])]

    traffic = _make_manager(width=width, seed=seed)
    for agent in agents:
        if rng.random() < 0.8:
            traffic.register_move(agent, rng.choice(list(Direction)))

    result = traffic.run(_make_region(agents, terrain))

    assert len(result.assignments) == len(agents)
    assert len(set(result.assignments.values())) == len(agents)
    for agent in agents:
        assert chebyshev_range(agent.pos, result.assignments[agent.agent_id]) <= 1
    assert len(result.commands) == sum(
        1 for agent in agents if result.assignments[agent.agent_id] != agent.pos
    )


def test_duplicate_ids_are_rejected_before_any_work():
    executed = []
    agents = [Agent("dup", 3, 3), Agent("dup", 4, 3)]
    traffic = _make_manager()
    traffic.register_move(agents[0], Direction.RIGHT)

    with pytest.raises(ValueError, match="dup"):
        traffic.run(_make_region(agents), executor=executed.append)
    assert executed == []
    assert traffic.intents.has_intent("dup")


def test_duplicate_ids_go_undetected_without_roster_validation():
    agents = [Agent("dup", 3, 3), Agent("dup", 4, 3)]
    traffic = _make_manager(validate_roster=False)
    traffic.register_move(agents[0], Direction.RIGHT)

    result = traffic.run(_make_region(agents))

    # Both records collapse onto one identity; the first one is sent onto the second's cell.
    assert result.assignments == {"dup": Coord(4, 3)}
    assert result.commands == [MoveCommand("dup", Direction.RIGHT)]


def test_region_width_must_match_manager():
    traffic = _make_manager(width=10)
    with pytest.raises(ValueError):
        traffic.run(_make_region([Agent("a", 2, 2)], width=12))


def test_executor_receives_commands():
    executed = []
    a = Agent("a", 4, 4)
    traffic = _make_manager()
    traffic.register_move(a, Direction.BOTTOM)
    result = traffic.run(_make_region([a]), executor=executed.append)
    assert executed == result.commands == [MoveCommand("a", Direction.BOTTOM)]


def test_default_executor_is_used_when_run_has_none():
    executed = []
    params = TrafficManagerParams(grid=GridDefaults(width=10))
    traffic = TrafficManager(params, rng=random.Random(0), executor=executed.append)
    a = Agent("a", 4, 4)
    traffic.register_move(a, Direction.LEFT)
    traffic.run(_make_region([a]))
    assert executed == [MoveCommand("a", Direction.LEFT)]


def test_intents_are_cleared_but_working_areas_persist():
    a, b = Agent("a", 4, 4), Agent("b", 7, 7)
    traffic = _make_manager()
    traffic.register_move(a, Direction.RIGHT)
    traffic.set_working_area(b, Coord(7, 7), 2)

    traffic.run(_make_region([a, b]))
    snapshot = traffic.get_snapshot()

    assert snapshot["intents"] == {}
    assert set(snapshot["working_areas"]) == {"b"}

    traffic.clear_working_area("b")
    assert traffic.get_snapshot()["working_areas"] == {}


def test_intents_can_be_kept_after_run():
    a = Agent("a", 4, 4)
    traffic = _make_manager(clear_intents_after_run=False)
    traffic.register_move(a, Direction.RIGHT)
    traffic.run(_make_region([a]))
    assert traffic.get_snapshot()["intents"] == {"a": Coord(5, 4)}
    traffic.clear()
    assert traffic.get_snapshot()["intents"] == {}


def test_run_regions_resolves_each_region_independently():
    north = [Agent("n1", 2, 2), Agent("n2", 3, 2)]
    south = [Agent("s1", 2, 2)]
    traffic = _make_manager()
    traffic.register_move(north[0], Direction.RIGHT)
    traffic.register_move(north[1], Direction.LEFT)
    traffic.register_move(south[0], Direction.BOTTOM)

    results = traffic.run_regions(
        [_make_region(north, name="north"), _make_region(south, name="south")]
    )

    assert set(results) == {"north", "south"}
    assert results["north"].assignments == {"n1": Coord(3, 2), "n2": Coord(2, 2)}
    assert results["south"].assignments == {"s1": Coord(2, 3)}
    assert results["south"].region == "south"
