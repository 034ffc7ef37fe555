"""Position component.

Immutable integer grid coordinates. Held by every :class:`pug_grid.entity.Entity`
and used as the key of occupancy lookups.
"""

from dataclasses import dataclass

from pug_grid.types import Offset


@dataclass(frozen=True)
class Position:
    """Grid coordinate.

    Attributes:
        x: Column index (0 at left).
        y: Row index (0 at top).
    """

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        """Return the position translated by ``(dx, dy)``."""
        return Position(self.x + dx, self.y + dy)

    def delta(self, other: "Position") -> Offset:
        """Return the offset leading from ``self`` to ``other``."""
        return (other.x - self.x, other.y - self.y)

    def as_tuple(self) -> Offset:
        return (self.x, self.y)
