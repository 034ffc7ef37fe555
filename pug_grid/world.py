"""Read-only world view handed to movement policies.

A :class:`WorldView` is rebuilt for every decision. It exposes the entity map
as it stands at that point of the turn (entities resolved earlier already
carry their new positions), the obstacle layer, and an ``is_passable`` check
bound to the live occupancy grid.
"""

from dataclasses import dataclass, field
from typing import Optional

from pyrsistent import PMap

from pug_grid.components import Position
from pug_grid.entity import Entity
from pug_grid.occupancy import OccupancyGrid
from pug_grid.state import Layer
from pug_grid.types import EntityID


@dataclass(frozen=True)
class WorldView:
    """Snapshot of the world for one decision.

    Attributes:
        width: Grid width.
        height: Grid height.
        obstacles: Obstacle layer (``[y][x]``).
        entities: Entity map including moves already resolved this turn.
        turn: Index of the turn being resolved.
        seed: Level seed, for reproducible tie-breaks.
    """

    width: int
    height: int
    obstacles: Layer
    entities: PMap[EntityID, Entity]
    turn: int
    seed: Optional[int]
    occupancy: OccupancyGrid = field(repr=False, compare=False)

    def is_passable(self, pos: Position, ignore_walls: bool = False) -> bool:
        return self.occupancy.is_passable(pos, ignore_walls=ignore_walls)

    @property
    def player(self) -> Optional[Entity]:
        for entity in self.entities.values():
            if entity.is_player:
                return entity
        return None

    def target_of(self, target: Optional[EntityID]) -> Optional[Entity]:
        """Resolve a policy target (``None`` means the player)."""
        if target is None:
            return self.player
        return self.entities.get(target)
