"""Core immutable ``State`` dataclass.

This module defines the frozen :class:`State` object that represents the
committed game snapshot between turns. The turn resolver is a function that
takes a previous ``State`` plus the player's move and returns a *new*
``State``; nothing is mutated in place. This keeps turns deterministic, makes
undo a matter of keeping old snapshots, and lets the presentation layer read a
committed state while the next turn is being resolved.

Design notes:

* ``terrain`` and ``obstacles`` are the static grid layers (``[y][x]``) stored
    as nested tuples. They are fixed for the lifetime of a level.
* ``entity`` is a **persistent map** (``pyrsistent.PMap``) keyed by
    ``EntityID``. The per-turn occupancy grid is *derived* from it and never
    stored here (see :mod:`pug_grid.occupancy`).
* ``message`` carries status notes produced by the last turn (for example an
    unreachable policy backend).
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pyrsistent import PMap, pmap

from pug_grid.entity import Entity
from pug_grid.types import EntityID, WALL

Layer = Tuple[Tuple[int, ...], ...]


@dataclass(frozen=True)
class State:
    """Immutable committed world state.

    Attributes:
        width (int): Grid width in tiles.
        height (int): Grid height in tiles.
        terrain (Layer): Terrain codes (``terrain[y][x]``), opaque to the engine.
        obstacles (Layer): Obstacle codes; ``WALL`` marks an impassable cell.
        entity (PMap[EntityID, Entity]): Committed entities by id.
        turn (int): Number of committed turns.
        message (str | None): Status note left by the last turn.
        seed (int | None): Level seed; also seeds policy tie-breaks.
    """

    width: int
    height: int
    terrain: Layer
    obstacles: Layer
    entity: PMap[EntityID, Entity] = pmap()
    turn: int = 0
    message: Optional[str] = None
    seed: Optional[int] = None

    @property
    def players(self) -> List[Entity]:
        return [e for e in self.entity.values() if e.is_player]

    @property
    def player_id(self) -> Optional[EntityID]:
        """Id of the single player entity, ``None`` if missing or ambiguous."""
        players = self.players
        if len(players) != 1:
            return None
        return players[0].id

    def is_wall(self, x: int, y: int) -> bool:
        return self.obstacles[y][x] == WALL

    @property
    def description(self) -> PMap[str, Any]:
        """Compact serialization for diagnostics.

        Returns:
            PMap[str, Any]: Dimensions, turn, message and one entry per entity.
        """
        entities = [
            {
                "id": e.id,
                "kind": e.kind.value,
                "name": e.name,
                "x": e.position.x,
                "y": e.position.y,
                "movement_order": e.movement_order,
                "policy": e.policy.kind.value,
            }
            for e in sorted(self.entity.values(), key=lambda e: e.id)
        ]
        return pmap(
            {
                "width": self.width,
                "height": self.height,
                "turn": self.turn,
                "message": self.message,
                "seed": self.seed,
                "entities": entities,
            }
        )


def empty_layer(width: int, height: int, value: int = 0) -> Layer:
    """Return a ``height`` x ``width`` layer filled with ``value``."""
    return tuple(tuple(value for _ in range(width)) for _ in range(height))


def freeze_layer(rows: List[List[int]]) -> Layer:
    return tuple(tuple(int(v) for v in row) for row in rows)
