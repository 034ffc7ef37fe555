from dataclasses import dataclass, field
from typing import List, Optional

from pug_grid.components import MovementPolicy, Position
from pug_grid.exceptions import LevelError
from pug_grid.types import WALL, EntityKind


@dataclass(frozen=True)
class EntityPlacement:
    """Authoring-time description of one entity (no id yet)."""

    kind: EntityKind
    position: Position
    policy: MovementPolicy
    name: Optional[str] = None
    flying: bool = False


@dataclass
class Level:
    """
    Grid-centric, authoring-time level representation.
    - ``terrain[y][x]`` and ``obstacles[y][x]`` are plain integer layers.
    - ``placements`` lists entities in the order ids are allocated.
    - Use :func:`pug_grid.levels.convert.to_state` to build the immutable
      ``State`` the turn resolver works on.
    """

    width: int
    height: int
    terrain: List[List[int]]
    obstacles: List[List[int]]
    placements: List[EntityPlacement] = field(default_factory=list)
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise LevelError(f"Invalid grid size {self.width}x{self.height}")
        for name in ("terrain", "obstacles"):
            layer = getattr(self, name)
            if len(layer) != self.height or any(len(r) != self.width for r in layer):
                raise LevelError(
                    f"{name} layer does not match grid size {self.width}x{self.height}"
                )

    # -------- Authoring API --------

    def add(self, placement: EntityPlacement) -> None:
        """Append a placement after checking its cell."""
        pos = placement.position
        self._check_bounds(pos)
        if not placement.flying and self.obstacles[pos.y][pos.x] == WALL:
            raise LevelError(f"Cannot place {placement.kind} on a wall at {pos}")
        if self.placement_at(pos) is not None:
            raise LevelError(f"Cell {pos} already holds an entity")
        if placement.kind == EntityKind.PLAYER and any(
            p.kind == EntityKind.PLAYER for p in self.placements
        ):
            raise LevelError("A level holds exactly one player")
        self.placements.append(placement)

    def placement_at(self, pos: Position) -> Optional[EntityPlacement]:
        for placement in self.placements:
            if placement.position == pos:
                return placement
        return None

    def set_wall(self, pos: Position, wall: bool = True) -> None:
        self._check_bounds(pos)
        self.obstacles[pos.y][pos.x] = WALL if wall else 0

    def validate(self) -> None:
        """Check the invariants a playable level needs.

        Raises:
            LevelError: No player, several players, or a placement that is out
                of bounds, on a wall (non-flying) or stacked on another.
        """
        players = [p for p in self.placements if p.kind == EntityKind.PLAYER]
        if len(players) != 1:
            raise LevelError(f"Expected one player placement, found {len(players)}")
        seen = set()
        for placement in self.placements:
            pos = placement.position
            self._check_bounds(pos)
            if not placement.flying and self.obstacles[pos.y][pos.x] == WALL:
                raise LevelError(f"{placement.kind} at {pos} is on a wall")
            if pos in seen:
                raise LevelError(f"Several entities at {pos}")
            seen.add(pos)

    # -------- Internal helpers --------

    def _check_bounds(self, pos: Position) -> None:
        if not (0 <= pos.x < self.width and 0 <= pos.y < self.height):
            raise LevelError(
                f"Out of bounds: {pos.as_tuple()} for grid {self.width}x{self.height}"
            )
