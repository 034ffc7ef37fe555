"""Built-in movement policy decision functions.

Each *decide function* maps ``(world view, entity, optional player input)`` to
the ``Position`` the entity wants to occupy next. Decide functions are pure:
they read the :class:`pug_grid.world.WorldView` (including its live
``is_passable`` check) and never touch the occupancy grid themselves.

Contract (``DecideFn``):

* Return the entity's current position (stay) or a position one step away
  along one of the policy's ``directions``.
* Must be safe to call while other entities of the same turn are still
  pending (the world view may be partially updated).

Whatever a policy returns is passed through :func:`validate_destination`
before the resolver commits it, so a buggy policy can at worst make its
entity stay in place.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

from pug_grid.components import MovementPolicy, Position
from pug_grid.entity import Entity
from pug_grid.types import AxisPreference, DecideFn, Offset, PolicyKind
from pug_grid.utils.grid import clamp_position, sign
from pug_grid.world import WorldView

logger = logging.getLogger(__name__)


def player_input_decide(
    view: WorldView, entity: Entity, player_input: Optional[Offset]
) -> Position:
    """Translate the player's directional input into a destination.

    The input may be one of the 8 unit offsets or an arbitrary pointer vector,
    which is reduced to its per-axis sign. The destination is clamped onto the
    grid; an impassable destination means the move is rejected (the turn
    still advances).
    """
    pos = entity.position
    if player_input is None:
        return pos
    dx, dy = sign(int(player_input[0])), sign(int(player_input[1]))
    dest = clamp_position(view.width, view.height, pos.offset(dx, dy))
    if dest == pos:
        return pos
    if not view.is_passable(dest, ignore_walls=entity.flying):
        return pos
    return dest


def step_candidates(dx: int, dy: int, axis_preference: AxisPreference) -> List[Offset]:
    """Ordered candidate offsets: diagonal, preferred axis, other axis.

    Zero offsets are omitted; staying is the implicit last resort.
    """
    candidates: List[Offset] = []
    if dx != 0 and dy != 0:
        candidates.append((dx, dy))
    vertical: Offset = (0, dy)
    horizontal: Offset = (dx, 0)
    if axis_preference == AxisPreference.VERTICAL:
        axes = [vertical, horizontal]
    else:
        axes = [horizontal, vertical]
    candidates.extend(axis for axis in axes if axis != (0, 0))
    return candidates


def first_passable(
    view: WorldView, entity: Entity, candidates: Sequence[Offset]
) -> Position:
    """Return the first passable candidate destination, else the current cell."""
    pos = entity.position
    for dx, dy in candidates:
        dest = pos.offset(dx, dy)
        if view.is_passable(dest, ignore_walls=entity.flying):
            return dest
    return pos


def seek_decide(
    view: WorldView, entity: Entity, player_input: Optional[Offset] = None
) -> Position:
    """Step toward the policy target (diagonal first)."""
    policy = entity.policy
    target = view.target_of(getattr(policy, "target", None))
    if target is None or target.id == entity.id:
        return entity.position
    dx, dy = entity.position.delta(target.position)
    axis_preference = getattr(policy, "axis_preference", AxisPreference.VERTICAL)
    return first_passable(
        view, entity, step_candidates(sign(dx), sign(dy), axis_preference)
    )


def flee_rng(view: WorldView, entity: Entity) -> random.Random:
    """Deterministic RNG for flee tie-breaks, seeded per (seed, turn, entity)."""
    base_seed = hash((view.seed if view.seed is not None else 0, view.turn, entity.id))
    return random.Random(base_seed)


def flee_decide(
    view: WorldView, entity: Entity, player_input: Optional[Offset] = None
) -> Position:
    """Step away from the policy target.

    Uses the seek candidate order with negated signs. An axis on which the
    entity is aligned with the target gets a pseudo-random +-1 nudge so the
    entity keeps evading instead of stepping straight along the line.
    """
    policy = entity.policy
    target = view.target_of(getattr(policy, "target", None))
    if target is None or target.id == entity.id:
        return entity.position
    tx, ty = entity.position.delta(target.position)
    dx, dy = -sign(tx), -sign(ty)
    rng = flee_rng(view, entity)
    if dx == 0:
        dx = rng.choice((-1, 1))
    if dy == 0:
        dy = rng.choice((-1, 1))
    axis_preference = getattr(policy, "axis_preference", AxisPreference.VERTICAL)
    return first_passable(view, entity, step_candidates(dx, dy, axis_preference))


def validate_destination(
    view: WorldView,
    entity: Entity,
    proposal: Position,
    directions: Sequence[Offset],
) -> Position:
    """Coerce a proposed destination into a legal one.

    The proposal is accepted only if it is the current cell, or exactly one of
    the allowed ``directions`` away and passable on the live occupancy grid.
    Everything else is rejected to "stay".
    """
    pos = entity.position
    if proposal == pos:
        return pos
    offset = pos.delta(proposal)
    if offset not in directions:
        logger.warning(
            "%s proposed %s (offset %s) outside its direction set; staying",
            entity.label,
            proposal.as_tuple(),
            offset,
        )
        return pos
    if not view.is_passable(proposal, ignore_walls=entity.flying):
        logger.debug("%s blocked at %s; staying", entity.label, proposal.as_tuple())
        return pos
    return proposal


def allowed_offsets(policy: MovementPolicy) -> Sequence[Offset]:
    """Direction set a policy's decisions are validated against."""
    return policy.directions


# Decide function registry for the synchronous policy kinds. External
# policies are awaited through :mod:`pug_grid.external` instead.
DECIDE_FN_REGISTRY: Dict[PolicyKind, DecideFn] = {
    PolicyKind.PLAYER_INPUT: player_input_decide,
    PolicyKind.SEEK: seek_decide,
    PolicyKind.FLEE: flee_decide,
}
