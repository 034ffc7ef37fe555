"""Movement policy components.

A movement policy is a closed tagged variant: each dataclass below carries a
``kind`` discriminant (:class:`pug_grid.types.PolicyKind`) and its own data
payload. Policies are pure data; the decision logic lives in
:mod:`pug_grid.policies` (built-ins) and :mod:`pug_grid.external` (backends).
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple, Union

from pug_grid.types import (
    ALL_OFFSETS,
    AxisPreference,
    EntityID,
    Offset,
    PolicyKind,
)


@dataclass(frozen=True)
class PlayerInputPolicy:
    """Moves by the directional input supplied for the turn."""

    kind: ClassVar[PolicyKind] = PolicyKind.PLAYER_INPUT
    directions: ClassVar[Tuple[Offset, ...]] = ALL_OFFSETS


@dataclass(frozen=True)
class SeekPolicy:
    """Step toward ``target`` (the player when ``None``).

    Attributes:
        target: Entity to approach; ``None`` means the player.
        axis_preference: Axis tried first when the diagonal is blocked.
    """

    target: Optional[EntityID] = None
    axis_preference: AxisPreference = AxisPreference.VERTICAL

    kind: ClassVar[PolicyKind] = PolicyKind.SEEK
    directions: ClassVar[Tuple[Offset, ...]] = ALL_OFFSETS


@dataclass(frozen=True)
class FleePolicy:
    """Step away from ``target`` (the player when ``None``)."""

    target: Optional[EntityID] = None
    axis_preference: AxisPreference = AxisPreference.VERTICAL

    kind: ClassVar[PolicyKind] = PolicyKind.FLEE
    directions: ClassVar[Tuple[Offset, ...]] = ALL_OFFSETS


@dataclass(frozen=True)
class ExternalPolicy:
    """Decision delegated to a named backend.

    Attributes:
        backend: Key into the backend mapping handed to the resolver.
        directions: Offsets the entity may take. Anything else the backend
            proposes is rejected to "stay".
        goal: Free-text description of the entity's intent, forwarded to
            language-model backends.
    """

    backend: str
    directions: Tuple[Offset, ...] = ALL_OFFSETS
    goal: str = ""

    kind: ClassVar[PolicyKind] = PolicyKind.EXTERNAL


MovementPolicy = Union[PlayerInputPolicy, SeekPolicy, FleePolicy, ExternalPolicy]
