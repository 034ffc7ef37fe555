"""Common type aliases and enumerations.

``DecideFn`` is the extension point for built-in movement policies; the
enumerations here are the closed sets the resolver dispatches on.
"""

from enum import StrEnum, auto
from typing import Callable, Optional, Tuple, TYPE_CHECKING


# Forward declaration for DecideFn typing to avoid circular imports:
if TYPE_CHECKING:
    from pug_grid.components import Position
    from pug_grid.entity import Entity
    from pug_grid.world import WorldView

EntityID = int

Offset = Tuple[int, int]

WALL = 92
"""Obstacle layer code marking an impassable cell."""

EMPTY = 0

DecideFn = Callable[["WorldView", "Entity", Optional[Offset]], "Position"]


class EntityKind(StrEnum):
    """Discriminant of an entity; also used as the occupancy tag."""

    PLAYER = auto()
    SEEKER = auto()
    FLEER = auto()
    EXTERNAL = auto()


class PolicyKind(StrEnum):
    """Closed set of movement policy variants."""

    PLAYER_INPUT = auto()
    SEEK = auto()
    FLEE = auto()
    EXTERNAL = auto()


class AxisPreference(StrEnum):
    """Axis tried first when a diagonal step is not available."""

    VERTICAL = auto()
    HORIZONTAL = auto()


class TurnPhase(StrEnum):
    """Turn state machine phases."""

    AWAITING_INPUT = auto()
    RESOLVING_PLAYER = auto()
    RESOLVING_ENEMIES = auto()
    COMMITTED = auto()


STAY: Offset = (0, 0)

ORTHOGONAL_OFFSETS: Tuple[Offset, ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))

DIAGONAL_OFFSETS: Tuple[Offset, ...] = ((-1, -1), (1, -1), (-1, 1), (1, 1))

ALL_OFFSETS: Tuple[Offset, ...] = ORTHOGONAL_OFFSETS + DIAGONAL_OFFSETS
