"""Spawning and despawning entities between turns.

Both operations are pure: they take a committed ``State`` and return a new
one. A spawned entity always gets a fresh id and a ``movement_order`` later
than every existing entity, so it moves after the enemies already on the
board.
"""

import logging
from dataclasses import replace
from typing import Optional, Tuple

from pug_grid.components import FleePolicy, MovementPolicy, Position, SeekPolicy
from pug_grid.entity import Entity, next_entity_id, next_movement_order
from pug_grid.state import State
from pug_grid.types import EntityID, EntityKind, WALL

logger = logging.getLogger(__name__)

DEFAULT_SPAWN_POSITION = Position(8, 8)

_FLEER_HINTS = ("mother", "flee")


def enemy_kind_from_prompt(prompt: str) -> Tuple[EntityKind, MovementPolicy]:
    """Pick a built-in enemy for a free-text request.

    Mentions of a "mother" or of fleeing produce a fleer; anything else a
    seeker.
    """
    text = prompt.lower()
    if any(hint in text for hint in _FLEER_HINTS):
        return EntityKind.FLEER, FleePolicy()
    return EntityKind.SEEKER, SeekPolicy()


def check_spawn_cell(state: State, position: Position, flying: bool = False) -> None:
    """Raise ``ValueError`` unless ``position`` can hold a new entity."""
    if not (0 <= position.x < state.width and 0 <= position.y < state.height):
        raise ValueError(f"Spawn position {position.as_tuple()} is out of bounds")
    if not flying and state.obstacles[position.y][position.x] == WALL:
        raise ValueError(f"Spawn position {position.as_tuple()} is a wall")
    for entity in state.entity.values():
        if entity.position == position:
            raise ValueError(
                f"Spawn position {position.as_tuple()} is occupied by {entity.label}"
            )


def spawn_entity(
    state: State,
    kind: EntityKind,
    policy: MovementPolicy,
    position: Position = DEFAULT_SPAWN_POSITION,
    name: Optional[str] = None,
    flying: bool = False,
) -> Tuple[State, EntityID]:
    """Add an entity to ``state``.

    Returns:
        Tuple[State, EntityID]: The new state and the allocated id.

    Raises:
        ValueError: The cell is out of bounds, a wall or already occupied, or
            a second player is requested.
    """
    if kind == EntityKind.PLAYER and state.players:
        raise ValueError("State already has a player entity")
    check_spawn_cell(state, position, flying=flying)
    entities = list(state.entity.values())
    entity = Entity(
        id=next_entity_id(entities),
        kind=kind,
        position=position,
        movement_order=next_movement_order(entities),
        policy=policy,
        flying=flying,
        name=name,
    )
    logger.info("Spawned %s at %s", entity.label, position.as_tuple())
    return replace(state, entity=state.entity.set(entity.id, entity)), entity.id


def despawn_entity(state: State, entity_id: EntityID) -> State:
    """Remove a non-player entity.

    Raises:
        KeyError: Unknown id.
        ValueError: The entity is the player.
    """
    entity = state.entity[entity_id]
    if entity.is_player:
        raise ValueError("The player entity cannot be despawned")
    logger.info("Despawned %s", entity.label)
    return replace(state, entity=state.entity.remove(entity_id))
