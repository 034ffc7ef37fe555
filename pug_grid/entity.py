"""Entity value object & ID allocation.

An :class:`Entity` bundles everything the turn resolver needs about one
character on the grid: identity, kind, position, its place in the processing
order and its movement policy. Entities are frozen; a move is expressed by
``dataclasses.replace(entity, position=...)``.

IDs are allocated from the committed entity map (``max + 1``) rather than a
process-global counter so that two runs over the same level allocate the same
ids. ``movement_order`` is allocated the same way, so a spawned entity
always moves after the ones already present.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from pug_grid.components import MovementPolicy, Position
from pug_grid.types import EntityID, EntityKind


@dataclass(frozen=True)
class Entity:
    """A character on the grid.

    Attributes:
        id: Unique entity id.
        kind: Discriminant; also used as the occupancy / render tag.
        position: Committed grid position.
        movement_order: Stable processing order among non-player entities.
        policy: Movement policy variant deciding the next cell.
        flying: Ignore the obstacle layer (never other entities).
        name: Optional display name.
    """

    id: EntityID
    kind: EntityKind
    position: Position
    movement_order: int
    policy: MovementPolicy
    flying: bool = False
    name: Optional[str] = None

    @property
    def is_player(self) -> bool:
        return self.kind == EntityKind.PLAYER

    @property
    def label(self) -> str:
        """Human readable label used in log lines."""
        return f"{self.name or self.kind.value}#{self.id}"


def next_entity_id(entities: Iterable[Entity]) -> EntityID:
    """Return the smallest id greater than every id in ``entities``."""
    return max((e.id for e in entities), default=0) + 1


def next_movement_order(entities: Iterable[Entity]) -> int:
    """Return a movement order later than every existing one."""
    return max((e.movement_order for e in entities), default=-1) + 1
