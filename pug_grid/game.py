"""Game session.

:class:`Game` wraps the pure turn resolver with everything an interactive
front end needs: the committed state, the turn phase machine, the undo
ledger, the initial configuration for resets, the external policy backends
and a short, newest-first game log.

Phase machine::

    AWAITING_INPUT -> RESOLVING_PLAYER -> RESOLVING_ENEMIES -> COMMITTED
          ^                                                       |
          +-------------------------------------------------------+

Moves submitted while a turn is being resolved are ignored rather than
queued. ``undo`` and ``reset`` are commands outside the turn cycle; they are
refused only while a turn is in flight.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from pug_grid.actions import Action, Command, binding_for_key
from pug_grid.components import ExternalPolicy, MovementPolicy, Position
from pug_grid.config import GameConfig
from pug_grid.exceptions import TurnAbortedError
from pug_grid.external.backends import (
    CompiledFunctionBackend,
    CompleteFn,
    PolicyBackend,
)
from pug_grid.external.generator import generate_enemy_behavior, validation_error
from pug_grid.history import HistoryLedger
from pug_grid.renderer.snapshot import Snapshot, snapshot
from pug_grid.state import State
from pug_grid.systems.spawn import (
    DEFAULT_SPAWN_POSITION,
    despawn_entity,
    enemy_kind_from_prompt,
    spawn_entity,
)
from pug_grid.systems.turn import Move, resolve_turn
from pug_grid.types import EntityID, EntityKind, TurnPhase

logger = logging.getLogger(__name__)


def describe_move(move: Move) -> str:
    if move == Action.WAIT or move == (0, 0):
        return "skip"
    if isinstance(move, Action):
        return move.value
    return f"({move[0]}, {move[1]})"


class Game:
    """Interactive session around a committed :class:`State`.

    Args:
        state (State): Initial state; also what :meth:`reset` returns to.
        config (GameConfig | None): Session tunables.
        backends (Dict[str, PolicyBackend] | None): External policy backends
            by name. Generated enemies register theirs here.
    """

    def __init__(
        self,
        state: State,
        config: Optional[GameConfig] = None,
        backends: Optional[Dict[str, PolicyBackend]] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.initial_state = state
        self.state = state
        self.backends: Dict[str, PolicyBackend] = dict(backends or {})
        self._initial_backends = dict(self.backends)
        self.history = HistoryLedger(limit=self.config.history_limit)
        self.phase = TurnPhase.AWAITING_INPUT
        self.log: Deque[str] = deque(maxlen=self.config.log_limit)

    # -------- Game log --------

    def add_log(self, message: str) -> None:
        """Prepend a time-stamped line to the game log."""
        self.log.appendleft(f"[{datetime.now():%H:%M}] {message}")

    @property
    def awaiting_input(self) -> bool:
        return self.phase == TurnPhase.AWAITING_INPUT

    def _enter(self, phase: TurnPhase) -> None:
        logger.debug("Turn %d: %s -> %s", self.state.turn, self.phase, phase)
        self.phase = phase

    # -------- Turns --------

    async def submit(self, move: Move) -> bool:
        """Resolve one turn with the player's ``move``.

        Returns:
            bool: True if a turn was committed. Input arriving while a turn is
                in flight is ignored and returns False, as does an aborted
                turn.
        """
        if not self.awaiting_input:
            logger.debug("Ignoring input %r while %s", move, self.phase)
            return False

        before = self.state
        self.add_log(f"Player move: {describe_move(move)}")
        try:
            after = await resolve_turn(
                before,
                move,
                backends=self.backends,
                timeout=self.config.external_timeout,
                on_phase=self._enter,
            )
        except TurnAbortedError as exc:
            logger.error("Turn %d aborted: %s", before.turn, exc)
            self.add_log(f"Turn aborted: {exc}")
            return False
        finally:
            self.phase = TurnPhase.AWAITING_INPUT

        self.history.push(before)
        self.state = after
        if after.message:
            self.add_log(after.message)
        return True

    def play(self, move: Move) -> bool:
        """Synchronous :meth:`submit`."""
        return asyncio.run(self.submit(move))

    async def press(self, key: str) -> bool:
        """Handle a key press using :data:`pug_grid.actions.KEY_BINDINGS`.

        Returns:
            bool: True if the key changed the game.
        """
        binding = binding_for_key(key)
        if binding is None:
            return False
        if binding == Command.RESET:
            return self.reset()
        if binding == Command.UNDO:
            return self.undo()
        return await self.submit(binding)

    # -------- Commands --------

    def undo(self) -> bool:
        """Restore the state before the last committed turn.

        The whole entity map is rolled back: enemies spawned since that turn
        disappear and despawned ones come back. Backends registered by
        :meth:`add_generated_enemy` stay in ``backends`` until :meth:`reset`,
        so a restored generated enemy keeps moving.
        """
        if not self.awaiting_input:
            return False
        entry = self.history.undo()
        if entry is None:
            self.add_log("Nothing to undo")
            return False
        self.state = entry.restore(self.state)
        self.add_log(f"Undid turn {self.state.turn + 1}")
        return True

    def reset(self) -> bool:
        """Return to the initial configuration and clear the history."""
        if not self.awaiting_input:
            return False
        self.state = self.initial_state
        self.backends = dict(self._initial_backends)
        self.history.clear()
        self.add_log("Game reset")
        return True

    # -------- Spawning --------

    def spawn(
        self,
        kind: EntityKind,
        policy: MovementPolicy,
        position: Position = DEFAULT_SPAWN_POSITION,
        name: Optional[str] = None,
        flying: bool = False,
    ) -> EntityID:
        """Add an entity between turns.

        Raises:
            ValueError: The cell cannot hold the entity, or a turn is in
                flight.
        """
        if not self.awaiting_input:
            raise ValueError("Cannot spawn while a turn is being resolved")
        self.state, entity_id = spawn_entity(
            self.state, kind, policy, position=position, name=name, flying=flying
        )
        self.add_log(f"Spawned {name or kind.value} at {position.as_tuple()}")
        return entity_id

    def spawn_from_prompt(
        self, prompt: str, position: Position = DEFAULT_SPAWN_POSITION
    ) -> EntityID:
        """Add a built-in enemy picked from a free-text request."""
        kind, policy = enemy_kind_from_prompt(prompt)
        name = "roach mother" if kind == EntityKind.FLEER else "roach"
        return self.spawn(kind, policy, position=position, name=name)

    async def add_generated_enemy(
        self,
        prompt: str,
        complete: CompleteFn,
        position: Position = DEFAULT_SPAWN_POSITION,
    ) -> Optional[EntityID]:
        """Generate a move function for ``prompt`` and spawn its enemy.

        The generated code is compiled into a :class:`CompiledFunctionBackend`
        registered under a fresh name.

        Returns:
            EntityID | None: The new enemy, or ``None`` if the generated code
                was unusable.
        """
        try:
            behavior = await generate_enemy_behavior(prompt, complete)
        except Exception as exc:
            logger.warning("Enemy generation failed: %s", exc, exc_info=True)
            self.add_log(f"Enemy generation failed: {exc}")
            return None
        error = validation_error(behavior.move_code)
        if error is not None:
            logger.warning(
                "Rejected generated code for %s: %s", behavior.enemy_name, error
            )
            self.add_log(f"Could not create {behavior.enemy_name}: {error}")
            return None

        backend_name = self._backend_name(behavior.enemy_name)
        self.backends[backend_name] = CompiledFunctionBackend(
            behavior.move_code,
            name=behavior.enemy_name,
            time_limit=self.config.external_timeout,
        )
        try:
            return self.spawn(
                EntityKind.EXTERNAL,
                ExternalPolicy(backend=backend_name, goal=prompt),
                position=position,
                name=behavior.enemy_name,
            )
        except ValueError:
            del self.backends[backend_name]
            raise

    def despawn(self, entity_id: EntityID) -> None:
        if not self.awaiting_input:
            raise ValueError("Cannot despawn while a turn is being resolved")
        label = self.state.entity[entity_id].label
        self.state = despawn_entity(self.state, entity_id)
        self.add_log(f"Removed {label}")

    def _backend_name(self, enemy_name: str) -> str:
        base = f"generated:{enemy_name}"
        name, n = base, 1
        while name in self.backends:
            n += 1
            name = f"{base}:{n}"
        return name

    # -------- Presentation --------

    def snapshot(self) -> Snapshot:
        return snapshot(self.state)

    @property
    def log_lines(self) -> List[str]:
        return list(self.log)

