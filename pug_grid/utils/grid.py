"""Grid math / collision helpers.

Utility predicates used by the occupancy grid, policies and level generation.
Functions here are pure and intentionally lightweight to keep inner loops fast.
"""

from typing import Sequence

from pug_grid.components import Position
from pug_grid.types import WALL


def sign(value: int) -> int:
    """Return -1, 0 or 1 according to the sign of ``value``."""
    return (value > 0) - (value < 0)


def is_in_bounds(width: int, height: int, pos: Position) -> bool:
    """Return True if ``pos`` lies within the level rectangle."""
    return 0 <= pos.x < width and 0 <= pos.y < height


def clamp_position(width: int, height: int, pos: Position) -> Position:
    """Clamp ``pos`` onto the level rectangle."""
    return Position(min(max(pos.x, 0), width - 1), min(max(pos.y, 0), height - 1))


def is_wall_at(obstacles: Sequence[Sequence[int]], pos: Position) -> bool:
    """Return True if the obstacle layer marks ``pos`` as a wall."""
    return obstacles[pos.y][pos.x] == WALL


def chebyshev_distance(a: Position, b: Position) -> int:
    """King-move distance (diagonal steps count as one)."""
    return max(abs(a.x - b.x), abs(a.y - b.y))
