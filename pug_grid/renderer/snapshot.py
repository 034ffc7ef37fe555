"""Render contract.

After each committed turn the presentation layer receives a :class:`Snapshot`:
the committed entities plus a ``[y][x]`` projection of entity kind tags. The
snapshot is built from the committed ``State`` only; the occupancy grid used
while a turn is in flight is never exposed.

``render_ascii`` is the same projection as text. It doubles as the "rendered
textual grid" sent to language-model policy backends.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

from pug_grid.entity import Entity
from pug_grid.state import State
from pug_grid.types import EntityKind, WALL

EntityGrid = Tuple[Tuple[Optional[str], ...], ...]

GLYPHS: Dict[EntityKind, str] = {
    EntityKind.PLAYER: "P",
    EntityKind.SEEKER: "S",
    EntityKind.FLEER: "F",
    EntityKind.EXTERNAL: "E",
}
WALL_GLYPH = "#"
FLOOR_GLYPH = "."


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of a committed turn for drawing."""

    turn: int
    entities: Tuple[Entity, ...]
    entity_grid: EntityGrid
    message: Optional[str] = None


def entity_grid(width: int, height: int, entities: Iterable[Entity]) -> EntityGrid:
    """Project entities onto a ``[y][x]`` grid of kind tags (``None`` = empty)."""
    rows = [[None] * width for _ in range(height)]
    for entity in entities:
        rows[entity.position.y][entity.position.x] = entity.kind.value
    return tuple(tuple(row) for row in rows)


def snapshot(state: State) -> Snapshot:
    """Build the render snapshot of a committed state."""
    entities = tuple(sorted(state.entity.values(), key=lambda e: e.id))
    return Snapshot(
        turn=state.turn,
        entities=entities,
        entity_grid=entity_grid(state.width, state.height, entities),
        message=state.message,
    )


def render_ascii(
    width: int,
    height: int,
    obstacles: Sequence[Sequence[int]],
    entities: Iterable[Entity],
) -> str:
    """Text projection: entity glyphs over walls (``#``) and floor (``.``)."""
    rows = [
        [WALL_GLYPH if obstacles[y][x] == WALL else FLOOR_GLYPH for x in range(width)]
        for y in range(height)
    ]
    for entity in entities:
        rows[entity.position.y][entity.position.x] = GLYPHS[entity.kind]
    return "\n".join("".join(row) for row in rows)


def state_to_ascii(state: State) -> str:
    return render_ascii(
        state.width, state.height, state.obstacles, state.entity.values()
    )
