"""Cell geometry shared by the traffic coordinator and the simulation harness.

Cells are addressed by ``Coord(x, y)`` and packed into a single integer key
(``y * W + x``) for the movement map.  The module also provides the eight
movement directions, read-only terrain/cost providers backed by numpy arrays,
and the small helpers needed to turn two adjacent cells into a direction.

Conventions
-----------
* ``y`` grows downward, so ``Direction.TOP`` is ``(0, -1)``.
* Regions are square; ``GridSpec.width`` is both width and height.
* The outermost ring (``EDGE_MARGIN`` cells) is a safety margin: the
  candidate generator never proposes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, NamedTuple, Optional, Protocol, Sequence

import numpy as np

EDGE_MARGIN = 1

TERRAIN_PLAIN = 0
TERRAIN_WALL = 1
TERRAIN_SWAMP = 2

MAX_COST = 255


class Coord(NamedTuple):
    x: int
    y: int


class Direction(IntEnum):
    """Eight-way movement directions, numbered clockwise from the top."""

    TOP = 1
    TOP_RIGHT = 2
    RIGHT = 3
    BOTTOM_RIGHT = 4
    BOTTOM = 5
    BOTTOM_LEFT = 6
    LEFT = 7
    TOP_LEFT = 8


DIRECTION_DELTA: Dict[Direction, Coord] = {
    Direction.TOP: Coord(0, -1),
    Direction.TOP_RIGHT: Coord(1, -1),
    Direction.RIGHT: Coord(1, 0),
    Direction.BOTTOM_RIGHT: Coord(1, 1),
    Direction.BOTTOM: Coord(0, 1),
    Direction.BOTTOM_LEFT: Coord(-1, 1),
    Direction.LEFT: Coord(-1, 0),
    Direction.TOP_LEFT: Coord(-1, -1),
}

_DELTA_DIRECTION: Dict[Coord, Direction] = {delta: d for d, delta in DIRECTION_DELTA.items()}


class TerrainProvider(Protocol):
    def get(self, x: int, y: int) -> int: ...


class CostProvider(Protocol):
    def get(self, x: int, y: int) -> int: ...


@dataclass(frozen=True)
class GridSpec:
    """Square grid of ``width`` x ``width`` cells."""

    width: int = 50

    def __post_init__(self) -> None:
        if self.width < 3:
            raise ValueError(f"Grid width must be at least 3, got {self.width}")

    @property
    def size(self) -> int:
        return self.width * self.width

    def in_bounds(self, coord: Coord) -> bool:
        return 0 <= coord.x < self.width and 0 <= coord.y < self.width

    def is_edge(self, coord: Coord) -> bool:
        """True for cells inside the outer safety ring."""
        last = self.width - EDGE_MARGIN
        return (
            coord.x < EDGE_MARGIN
            or coord.y < EDGE_MARGIN
            or coord.x >= last
            or coord.y >= last
        )

    def is_interior(self, coord: Coord) -> bool:
        return self.in_bounds(coord) and not self.is_edge(coord)

    def pack(self, coord: Coord) -> int:
        """Pack ``coord`` into ``y * width + x``."""
        if not self.in_bounds(coord):
            raise ValueError(f"Coordinate {tuple(coord)} outside {self.width}x{self.width} grid")
        return coord.y * self.width + coord.x

    def unpack(self, key: int) -> Coord:
        if not 0 <= key < self.size:
            raise ValueError(f"Packed key {key} outside [0, {self.size})")
        y, x = divmod(key, self.width)
        return Coord(x, y)

    def clamp(self, x: int, y: int) -> Coord:
        last = self.width - 1
        return Coord(max(0, min(last, x)), max(0, min(last, y)))

    def neighbors(self, coord: Coord) -> Iterable[Coord]:
        """Yield the in-bounds 8-neighbourhood of ``coord`` in direction order."""
        for delta in DIRECTION_DELTA.values():
            candidate = Coord(coord.x + delta.x, coord.y + delta.y)
            if self.in_bounds(candidate):
                yield candidate


def as_coord(value) -> Coord:
    """Accept ``Coord``, ``(x, y)`` tuples, or anything exposing ``x``/``y``."""
    if isinstance(value, Coord):
        return value
    if hasattr(value, "x") and hasattr(value, "y"):
        return Coord(int(value.x), int(value.y))
    x, y = value
    return Coord(int(x), int(y))


def direction_target(origin: Coord, direction: Direction, grid: GridSpec) -> Coord:
    """Cell one step from ``origin`` toward ``direction``, clamped to the grid."""
    delta = DIRECTION_DELTA[Direction(direction)]
    return grid.clamp(origin.x + delta.x, origin.y + delta.y)


def direction_to(origin: Coord, target: Coord) -> Direction:
    """Direction of the single step from ``origin`` toward ``target``."""
    dx = (target.x > origin.x) - (target.x < origin.x)
    dy = (target.y > origin.y) - (target.y < origin.y)
    if dx == 0 and dy == 0:
        raise ValueError(f"No direction from {tuple(origin)} to itself")
    return _DELTA_DIRECTION[Coord(dx, dy)]


def chebyshev_range(a: Coord, b: Coord) -> int:
    return max(abs(a.x - b.x), abs(a.y - b.y))


class TerrainGrid:
    """Per-cell terrain masks for one region (wall / swamp / plain)."""

    def __init__(self, grid: GridSpec, masks: Optional[np.ndarray] = None) -> None:
        self.grid = grid
        if masks is None:
            masks = np.zeros((grid.width, grid.width), dtype=np.uint8)
        masks = np.asarray(masks, dtype=np.uint8)
        if masks.shape != (grid.width, grid.width):
            raise ValueError(
                f"Terrain shape {masks.shape} does not match {grid.width}x{grid.width} grid"
            )
        # Indexed [y, x] so printing the array matches the map orientation.
        self._masks = masks

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "TerrainGrid":
        """Parse an ASCII map: ``#`` wall, ``~`` swamp, anything else plain."""
        width = len(rows)
        if any(len(row) != width for row in rows):
            raise ValueError("Terrain rows must form a square map")
        masks = np.zeros((width, width), dtype=np.uint8)
        for y, row in enumerate(rows):
            for x, char in enumerate(row):
                if char == "#":
                    masks[y, x] = TERRAIN_WALL
                elif char == "~":
                    masks[y, x] = TERRAIN_SWAMP
        return cls(GridSpec(width), masks)

    def get(self, x: int, y: int) -> int:
        return int(self._masks[y, x])

    def set(self, x: int, y: int, mask: int) -> None:
        self._masks[y, x] = mask

    def is_wall(self, x: int, y: int) -> bool:
        return self.get(x, y) == TERRAIN_WALL

    def walkable_cells(self) -> List[Coord]:
        ys, xs = np.nonzero(self._masks != TERRAIN_WALL)
        return [Coord(int(x), int(y)) for x, y in zip(xs, ys)]

    @property
    def masks(self) -> np.ndarray:
        return self._masks


class CostMatrix:
    """Per-cell traversal cost in ``[0, 255]``; zero means "use terrain default"."""

    def __init__(self, grid: GridSpec, costs: Optional[np.ndarray] = None) -> None:
        self.grid = grid
        if costs is None:
            costs = np.zeros((grid.width, grid.width), dtype=np.uint8)
        costs = np.clip(np.asarray(costs), 0, MAX_COST).astype(np.uint8)
        if costs.shape != (grid.width, grid.width):
            raise ValueError(
                f"Cost shape {costs.shape} does not match {grid.width}x{grid.width} grid"
            )
        self._costs = costs

    def get(self, x: int, y: int) -> int:
        return int(self._costs[y, x])

    def set(self, x: int, y: int, cost: int) -> None:
        self._costs[y, x] = max(0, min(MAX_COST, int(cost)))


__all__ = [
    "EDGE_MARGIN",
    "TERRAIN_PLAIN",
    "TERRAIN_WALL",
    "TERRAIN_SWAMP",
    "MAX_COST",
    "Coord",
    "Direction",
    "DIRECTION_DELTA",
    "TerrainProvider",
    "CostProvider",
    "GridSpec",
    "TerrainGrid",
    "CostMatrix",
    "as_coord",
    "direction_target",
    "direction_to",
    "chebyshev_range",
]
