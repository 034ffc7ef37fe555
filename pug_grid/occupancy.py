"""Per-turn occupancy grid.

The occupancy grid is the scratch structure the turn resolver owns while a
turn is in flight. It is seeded from the committed entity positions, and each
entity's cell is cleared before it decides and re-marked once its move is
resolved, so entities processed later observe earlier moves.

Passability combines three checks: the cell is in bounds, it is not a wall in
the obstacle layer (unless the mover ignores walls) and it is not occupied.
Policies only ever see :meth:`OccupancyGrid.is_passable` through a
:class:`pug_grid.world.WorldView`; they never mark or clear cells.
"""

from typing import List, Optional, Sequence

from pug_grid.components import Position
from pug_grid.state import State
from pug_grid.types import EntityKind
from pug_grid.utils.grid import is_in_bounds, is_wall_at


class OccupancyGrid:
    """Mutable ``[y][x]`` grid of entity kind tags (``None`` = empty)."""

    def __init__(
        self, width: int, height: int, obstacles: Sequence[Sequence[int]]
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid grid size {width}x{height}")
        if len(obstacles) != height or any(len(row) != width for row in obstacles):
            raise ValueError(
                f"Obstacle layer does not match grid size {width}x{height}"
            )
        self.width = width
        self.height = height
        self.obstacles = obstacles
        self._cells: List[List[Optional[EntityKind]]] = [
            [None] * width for _ in range(height)
        ]

    @classmethod
    def from_state(cls, state: State) -> "OccupancyGrid":
        """Seed a grid from the committed entity positions of ``state``."""
        grid = cls(state.width, state.height, state.obstacles)
        for entity in state.entity.values():
            grid.mark_occupied(entity.position, entity.kind)
        return grid

    def in_bounds(self, pos: Position) -> bool:
        return is_in_bounds(self.width, self.height, pos)

    def is_wall(self, pos: Position) -> bool:
        return is_wall_at(self.obstacles, pos)

    def tag_at(self, pos: Position) -> Optional[EntityKind]:
        return self._cells[pos.y][pos.x]

    def is_passable(self, pos: Position, ignore_walls: bool = False) -> bool:
        """Return True if a mover may enter ``pos``.

        Arguments:
            pos: Candidate destination.
            ignore_walls: Skip the obstacle check (flying movers). Occupied
                cells stay impassable either way.
        """
        if not self.in_bounds(pos):
            return False
        if not ignore_walls and self.is_wall(pos):
            return False
        return self._cells[pos.y][pos.x] is None

    def mark_occupied(self, pos: Position, tag: EntityKind) -> None:
        """Claim ``pos`` for an entity of kind ``tag``.

        Raises:
            ValueError: If ``pos`` is out of bounds or already claimed.
        """
        if not self.in_bounds(pos):
            raise ValueError(f"Cannot occupy out-of-bounds cell {pos}")
        current = self._cells[pos.y][pos.x]
        if current is not None:
            raise ValueError(f"Cell {pos} already occupied by {current}")
        self._cells[pos.y][pos.x] = tag

    def clear_occupied(self, pos: Position) -> None:
        """Release ``pos``; out-of-bounds positions are ignored."""
        if self.in_bounds(pos):
            self._cells[pos.y][pos.x] = None

    def rows(self) -> List[List[Optional[EntityKind]]]:
        """Return a copy of the current tags (for debugging only)."""
        return [list(row) for row in self._cells]
