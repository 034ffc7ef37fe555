"""pug_grid.components
=================================

Aggregate import surface for the value objects entities are built from: the
:class:`Position` coordinate and the movement policy variants. All of them are
frozen dataclasses; the turn resolver replaces them rather than mutating.

    from pug_grid.components import Position, SeekPolicy
"""

from .policy import (
    ExternalPolicy,
    FleePolicy,
    MovementPolicy,
    PlayerInputPolicy,
    SeekPolicy,
)
from .position import Position

__all__ = [
    "ExternalPolicy",
    "FleePolicy",
    "MovementPolicy",
    "PlayerInputPolicy",
    "Position",
    "SeekPolicy",
]
