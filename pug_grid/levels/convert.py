"""Level <-> State conversion."""

from pyrsistent import pmap

from pug_grid.entity import Entity
from pug_grid.levels.grid import EntityPlacement, Level
from pug_grid.state import State, freeze_layer


def to_state(level: Level) -> State:
    """Validate ``level`` and build the initial ``State``.

    Ids are allocated ``1..n`` and movement orders ``0..n-1`` in placement
    order.
    """
    level.validate()
    entities = {}
    for index, placement in enumerate(level.placements):
        entity_id = index + 1
        entities[entity_id] = Entity(
            id=entity_id,
            kind=placement.kind,
            position=placement.position,
            movement_order=index,
            policy=placement.policy,
            flying=placement.flying,
            name=placement.name,
        )
    return State(
        width=level.width,
        height=level.height,
        terrain=freeze_layer(level.terrain),
        obstacles=freeze_layer(level.obstacles),
        entity=pmap(entities),
        turn=0,
        seed=level.seed,
    )


def from_state(state: State) -> Level:
    """Rebuild an authoring ``Level`` (placements ordered by movement order)."""
    placements = [
        EntityPlacement(
            kind=e.kind,
            position=e.position,
            policy=e.policy,
            name=e.name,
            flying=e.flying,
        )
        for e in sorted(state.entity.values(), key=lambda e: (e.movement_order, e.id))
    ]
    return Level(
        width=state.width,
        height=state.height,
        terrain=[list(row) for row in state.terrain],
        obstacles=[list(row) for row in state.obstacles],
        placements=placements,
        seed=state.seed,
    )
