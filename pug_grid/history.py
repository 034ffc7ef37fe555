"""History/Undo ledger.

Before a turn commits, the session pushes the committed entity map and turn
counter; ``undo`` pops the most recent entry. The entity map is a persistent
map of frozen entities, so keeping a reference is as good as a deep copy.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from pyrsistent import PMap

from pug_grid.entity import Entity
from pug_grid.state import State
from pug_grid.types import EntityID


@dataclass(frozen=True)
class HistoryEntry:
    entities: PMap[EntityID, Entity]
    turn: int

    def restore(self, state: State) -> State:
        """Return ``state`` with this entry's entities and turn."""
        return State(
            width=state.width,
            height=state.height,
            terrain=state.terrain,
            obstacles=state.obstacles,
            entity=self.entities,
            turn=self.turn,
            message=None,
            seed=state.seed,
        )


class HistoryLedger:
    """LIFO stack of pre-turn snapshots.

    Args:
        limit (int | None): Keep at most this many entries (oldest dropped
            first). ``None`` keeps everything.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and limit <= 0:
            raise ValueError("History limit must be positive")
        self._entries: Deque[HistoryEntry] = deque(maxlen=limit)

    def push(self, state: State) -> None:
        self._entries.append(HistoryEntry(entities=state.entity, turn=state.turn))

    def undo(self) -> Optional[HistoryEntry]:
        """Pop the most recent entry, or ``None`` if there is nothing to undo."""
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
