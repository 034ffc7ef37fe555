"""Turn resolution.

This module implements one full turn: the player's move followed by every
other entity's move, resolved against a shared occupancy grid and committed
as a new :class:`pug_grid.state.State`. :func:`resolve_turn` is the only
entry point that moves entities; :func:`step` is its synchronous wrapper.

Ordering (high level):

1. Structural checks (exactly one player, consistent layers, no overlaps).
    Failures raise :class:`pug_grid.exceptions.TurnAbortedError` before
    anything is computed.
2. The occupancy grid is seeded from committed positions.
3. The player's cell is cleared, its destination decided from the input and
    validated, its new cell marked.
4. Remaining entities are processed in ``(movement_order, id)`` order. Each
    one's cell is cleared, its policy consulted with a world view reflecting
    every move resolved so far, the proposal validated and the resulting cell
    marked. External policies are awaited one at a time: processing order is
    the only tie-break for "who claims a cell first", so decisions are never
    gathered concurrently.
5. The working entity map is committed with ``turn + 1``.

Per-entity failures (a policy raising, a malformed or late external answer,
an unknown backend) make that entity stay and never abort the turn.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pyrsistent import PMap

from pug_grid.actions import ACTION_OFFSETS, Action
from pug_grid.components import ExternalPolicy, Position
from pug_grid.entity import Entity
from pug_grid.exceptions import PolicyResponseError, TurnAbortedError
from pug_grid.external.backends import PolicyBackend
from pug_grid.external.protocol import build_request, coerce_offset
from pug_grid.occupancy import OccupancyGrid
from pug_grid.policies import (
    DECIDE_FN_REGISTRY,
    allowed_offsets,
    player_input_decide,
    validate_destination,
)
from pug_grid.state import State
from pug_grid.types import EntityID, Offset, PolicyKind, TurnPhase
from pug_grid.utils.grid import is_in_bounds
from pug_grid.world import WorldView

logger = logging.getLogger(__name__)

DEFAULT_EXTERNAL_TIMEOUT = 5.0

Move = Union[Action, Offset]
Backends = Mapping[str, PolicyBackend]
PhaseHook = Callable[[TurnPhase], None]


def move_offset(move: Move) -> Offset:
    """Translate an ``Action`` or a raw ``(dx, dy)`` vector into an offset."""
    if isinstance(move, Action):
        return ACTION_OFFSETS[move]
    return (int(move[0]), int(move[1]))


def processing_order(entities: Iterable[Entity]) -> List[Entity]:
    """Non-player entities sorted by ``(movement_order, id)``."""
    return sorted(
        (e for e in entities if not e.is_player),
        key=lambda e: (e.movement_order, e.id),
    )


def check_structure(state: State) -> Entity:
    """Validate what a turn relies on and return the player entity.

    Raises:
        TurnAbortedError: Missing or duplicate player, layers not matching the
            grid size, entities out of bounds or sharing a cell.
    """
    players = state.players
    if not players:
        raise TurnAbortedError("No player entity")
    if len(players) > 1:
        raise TurnAbortedError(
            f"Expected one player entity, found {[p.id for p in players]}"
        )
    for name in ("terrain", "obstacles"):
        layer: Sequence[Sequence[int]] = getattr(state, name)
        if len(layer) != state.height or any(len(r) != state.width for r in layer):
            raise TurnAbortedError(
                f"{name} layer does not match grid size {state.width}x{state.height}"
            )
    seen: Dict[Position, EntityID] = {}
    for entity in state.entity.values():
        if not is_in_bounds(state.width, state.height, entity.position):
            raise TurnAbortedError(f"{entity.label} is out of bounds")
        if entity.position in seen:
            raise TurnAbortedError(
                f"{entity.label} shares {entity.position.as_tuple()} "
                f"with entity {seen[entity.position]}"
            )
        seen[entity.position] = entity.id
    return players[0]


def _view(
    state: State, working: PMap[EntityID, Entity], occupancy: OccupancyGrid
) -> WorldView:
    return WorldView(
        width=state.width,
        height=state.height,
        obstacles=state.obstacles,
        entities=working,
        turn=state.turn,
        seed=state.seed,
        occupancy=occupancy,
    )


async def external_decide(
    view: WorldView,
    entity: Entity,
    policy: ExternalPolicy,
    backends: Backends,
    timeout: Optional[float],
    notices: List[str],
) -> Position:
    """Await an external backend and turn its answer into a proposal.

    Any failure (unknown backend, timeout, malformed answer, backend error)
    is logged and yields the entity's current position.
    """
    backend = backends.get(policy.backend)
    if backend is None:
        notice = f"{entity.label}: no policy backend '{policy.backend}'"
        logger.warning("%s", notice)
        notices.append(notice)
        return entity.position

    request = build_request(view, entity, policy)
    try:
        answer = await asyncio.wait_for(backend.decide(request), timeout)
        dx, dy = coerce_offset(answer)
    except TimeoutError:
        notice = (
            f"{entity.label}: backend '{policy.backend}' timed out after {timeout}s"
        )
        logger.warning("%s", notice)
        notices.append(notice)
        return entity.position
    except PolicyResponseError as exc:
        logger.warning(
            "%s: malformed answer from '%s': %s", entity.label, policy.backend, exc
        )
        return entity.position
    except Exception as exc:
        notice = f"{entity.label}: backend '{policy.backend}' unreachable ({exc})"
        logger.warning("%s", notice, exc_info=True)
        notices.append(notice)
        return entity.position
    return entity.position.offset(dx, dy)


async def decide(
    view: WorldView,
    entity: Entity,
    backends: Backends,
    timeout: Optional[float],
    notices: List[str],
) -> Position:
    """Dispatch on the entity's policy kind and return its proposal."""
    policy = entity.policy
    if isinstance(policy, ExternalPolicy):
        return await external_decide(view, entity, policy, backends, timeout, notices)
    if policy.kind in (PolicyKind.SEEK, PolicyKind.FLEE, PolicyKind.PLAYER_INPUT):
        decide_fn = DECIDE_FN_REGISTRY[policy.kind]
        try:
            return decide_fn(view, entity, None)
        except Exception:
            logger.exception("%s: %s policy failed; staying", entity.label, policy.kind)
            return entity.position
    raise ValueError(f"Unknown policy kind {policy.kind!r} for {entity.label}")


async def resolve_turn(
    state: State,
    move: Move,
    backends: Optional[Backends] = None,
    timeout: Optional[float] = DEFAULT_EXTERNAL_TIMEOUT,
    on_phase: Optional[PhaseHook] = None,
) -> State:
    """Resolve one turn and return the committed state.

    Args:
        state (State): Committed state before the turn.
        move (Move): Player input, an ``Action`` or a ``(dx, dy)`` vector.
        backends (Mapping[str, PolicyBackend] | None): External policy
            backends by name.
        timeout (float | None): Bound, in seconds, on each external decision.
            ``None`` waits indefinitely.
        on_phase (Callable | None): Called on each phase transition.

    Returns:
        State: New state with moved entities, ``turn + 1`` and ``message``
            listing per-entity degradations (``None`` if there were none).

    Raises:
        TurnAbortedError: Structural failure; nothing was resolved.
    """
    player = check_structure(state)
    backends = backends or {}
    notices: List[str] = []

    def enter(phase: TurnPhase) -> None:
        if on_phase is not None:
            on_phase(phase)

    occupancy = OccupancyGrid.from_state(state)
    working = state.entity

    enter(TurnPhase.RESOLVING_PLAYER)
    occupancy.clear_occupied(player.position)
    view = _view(state, working, occupancy)
    proposal = player_input_decide(view, player, move_offset(move))
    dest = validate_destination(view, player, proposal, allowed_offsets(player.policy))
    occupancy.mark_occupied(dest, player.kind)
    working = working.set(player.id, replace(player, position=dest))

    enter(TurnPhase.RESOLVING_ENEMIES)
    for enemy in processing_order(working.values()):
        occupancy.clear_occupied(enemy.position)
        view = _view(state, working, occupancy)
        proposal = await decide(view, enemy, backends, timeout, notices)
        dest = validate_destination(
            view, enemy, proposal, allowed_offsets(enemy.policy)
        )
        occupancy.mark_occupied(dest, enemy.kind)
        if dest != enemy.position:
            working = working.set(enemy.id, replace(enemy, position=dest))

    enter(TurnPhase.COMMITTED)
    logger.debug("Turn %d committed", state.turn + 1)
    return replace(
        state,
        entity=working,
        turn=state.turn + 1,
        message="; ".join(notices) if notices else None,
    )


def step(
    state: State,
    move: Move,
    backends: Optional[Backends] = None,
    timeout: Optional[float] = DEFAULT_EXTERNAL_TIMEOUT,
) -> State:
    """Synchronous :func:`resolve_turn` for callers without an event loop."""
    return asyncio.run(resolve_turn(state, move, backends=backends, timeout=timeout))
