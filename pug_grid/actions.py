"""Action enumerations and key bindings.

:class:`Action` is the 8-way movement vocabulary plus ``WAIT`` (skip a turn).
:class:`Command` holds the global, turn-independent commands. ``KEY_BINDINGS``
maps keyboard keys (as reported by browser / terminal key events) onto either.

``ACTION_OFFSETS`` is the canonical mapping from action to grid offset; checks
like ``if action in MOVE_ACTIONS`` are preferred over enum name comparisons.
"""

from enum import IntEnum, StrEnum, auto
from typing import Dict, Optional, Union

from pug_grid.types import Offset


class Action(StrEnum):
    """String enum of player moves.

    Members:
        UP, DOWN, LEFT, RIGHT: Orthogonal moves.
        UP_LEFT, UP_RIGHT, DOWN_LEFT, DOWN_RIGHT: Diagonal moves.
        WAIT: Skip the move; enemies still act.
    """

    UP = auto()
    DOWN = auto()
    LEFT = auto()
    RIGHT = auto()
    UP_LEFT = auto()
    UP_RIGHT = auto()
    DOWN_LEFT = auto()
    DOWN_RIGHT = auto()
    WAIT = auto()


class Command(StrEnum):
    """Global commands, available whatever the turn phase."""

    RESET = auto()
    UNDO = auto()


class ActionIndex(IntEnum):
    """Stable integer mapping for discrete-action drivers."""

    UP = 0
    DOWN = auto()
    LEFT = auto()
    RIGHT = auto()
    UP_LEFT = auto()
    UP_RIGHT = auto()
    DOWN_LEFT = auto()
    DOWN_RIGHT = auto()
    WAIT = auto()


ACTION_OFFSETS: Dict[Action, Offset] = {
    Action.UP: (0, -1),
    Action.DOWN: (0, 1),
    Action.LEFT: (-1, 0),
    Action.RIGHT: (1, 0),
    Action.UP_LEFT: (-1, -1),
    Action.UP_RIGHT: (1, -1),
    Action.DOWN_LEFT: (-1, 1),
    Action.DOWN_RIGHT: (1, 1),
    Action.WAIT: (0, 0),
}

MOVE_ACTIONS = [a for a in Action if a != Action.WAIT]

KEY_BINDINGS: Dict[str, Union[Action, Command]] = {
    # Arrows and WASD
    "ArrowUp": Action.UP,
    "ArrowDown": Action.DOWN,
    "ArrowLeft": Action.LEFT,
    "ArrowRight": Action.RIGHT,
    "w": Action.UP,
    "s": Action.DOWN,
    "a": Action.LEFT,
    "d": Action.RIGHT,
    # Numpad layout
    "1": Action.DOWN_LEFT,
    "2": Action.DOWN,
    "3": Action.DOWN_RIGHT,
    "4": Action.LEFT,
    "5": Action.WAIT,
    " ": Action.WAIT,
    "6": Action.RIGHT,
    "7": Action.UP_LEFT,
    "8": Action.UP,
    "9": Action.UP_RIGHT,
    # Global
    "r": Command.RESET,
    "z": Command.UNDO,
}


def action_from_index(index: int) -> Action:
    """Map an :class:`ActionIndex` value to its :class:`Action`."""
    return Action[ActionIndex(index).name]


def binding_for_key(key: str) -> Optional[Union[Action, Command]]:
    """Resolve a key name; single letters are case-insensitive."""
    if key in KEY_BINDINGS:
        return KEY_BINDINGS[key]
    if len(key) == 1:
        return KEY_BINDINGS.get(key.lower())
    return None
