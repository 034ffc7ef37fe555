"""External policy request / response protocol.

External backends see a narrow, serializable :class:`PolicyRequest` (absolute
positions, offsets relative to the deciding entity, a rendered text grid) and
answer in one of several shapes: a direction word, a list of relative offsets,
an absolute position, or a full replacement grid of entity tokens. The
helpers here coerce each shape into a single step offset and raise
:class:`pug_grid.exceptions.PolicyResponseError` for anything malformed, which
the resolver turns into "stay".
"""

import json
import math
import re
from dataclasses import asdict, dataclass, field
from typing import (
    Any,
    Callable,
    Collection,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from pydantic import BaseModel, TypeAdapter, ValidationError

from pug_grid.components import ExternalPolicy, Position
from pug_grid.entity import Entity
from pug_grid.exceptions import PolicyResponseError
from pug_grid.renderer.snapshot import render_ascii
from pug_grid.types import ALL_OFFSETS, STAY, EntityID, Offset
from pug_grid.world import WorldView


@dataclass(frozen=True)
class EntityInfo:
    """Serialized entity as seen from the deciding entity."""

    id: EntityID
    kind: str
    name: Optional[str]
    x: int
    y: int
    dx: int
    dy: int


@dataclass(frozen=True)
class PolicyRequest:
    """Everything an external backend may look at for one decision.

    Attributes:
        entity_id: Deciding entity.
        kind: Deciding entity kind.
        name: Deciding entity display name.
        goal: Free-text intent from the entity's :class:`ExternalPolicy`.
        position: Absolute ``(x, y)`` of the deciding entity.
        player: Absolute ``(x, y)`` of the player, if any.
        width: Grid width.
        height: Grid height.
        turn: Turn being resolved.
        entities: All entities (player first, then processing order) with
            offsets relative to the deciding entity.
        enemy_ids: Non-player entity ids in processing order; batched answers
            are matched against this order.
        directions: Offsets the entity may take.
        text_grid: ASCII rendering of the current (partial) turn.
        is_passable: Read-only ``(x, y) -> bool`` check against the live occupancy
            grid. Not serialized.
    """

    entity_id: EntityID
    kind: str
    name: Optional[str]
    goal: str
    position: Offset
    player: Optional[Offset]
    width: int
    height: int
    turn: int
    entities: Tuple[EntityInfo, ...]
    enemy_ids: Tuple[EntityID, ...]
    directions: Tuple[Offset, ...]
    text_grid: str
    is_passable: Callable[[int, int], bool] = field(
        default=lambda x, y: False, repr=False, compare=False
    )

    @property
    def enemy_index(self) -> int:
        """Position of the deciding entity within ``enemy_ids`` (-1 if absent)."""
        try:
            return self.enemy_ids.index(self.entity_id)
        except ValueError:
            return -1

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly payload (the ``is_passable`` check is dropped)."""
        payload = asdict(self)
        payload.pop("is_passable", None)
        payload["directions"] = [list(d) for d in self.directions]
        payload["position"] = list(self.position)
        payload["player"] = list(self.player) if self.player is not None else None
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def build_request(
    view: WorldView, entity: Entity, policy: ExternalPolicy
) -> PolicyRequest:
    """Serialize the world as seen by ``entity`` for an external backend."""
    ordered = sorted(
        view.entities.values(),
        key=lambda e: (not e.is_player, e.movement_order, e.id),
    )
    pos = entity.position
    infos = tuple(
        EntityInfo(
            id=e.id,
            kind=e.kind.value,
            name=e.name,
            x=e.position.x,
            y=e.position.y,
            dx=e.position.x - pos.x,
            dy=e.position.y - pos.y,
        )
        for e in ordered
    )
    player = view.player

    def passable(x: int, y: int) -> bool:
        return view.is_passable(Position(int(x), int(y)), ignore_walls=entity.flying)

    return PolicyRequest(
        entity_id=entity.id,
        kind=entity.kind.value,
        name=entity.name,
        goal=policy.goal,
        position=pos.as_tuple(),
        player=player.position.as_tuple() if player is not None else None,
        width=view.width,
        height=view.height,
        turn=view.turn,
        entities=infos,
        enemy_ids=tuple(e.id for e in ordered if not e.is_player),
        directions=tuple(policy.directions),
        text_grid=render_ascii(view.width, view.height, view.obstacles, ordered),
        is_passable=passable,
    )


# --- Response coercion ---

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")

# Compound directions come first so that "up-left" wins over "up" on a tie.
_DIRECTION_PATTERNS: List[Tuple[re.Pattern[str], Offset]] = [
    (re.compile(r"\b(?:up[\s_-]?left|north[\s_-]?west|nw)\b"), (-1, -1)),
    (re.compile(r"\b(?:up[\s_-]?right|north[\s_-]?east|ne)\b"), (1, -1)),
    (re.compile(r"\b(?:down[\s_-]?left|south[\s_-]?west|sw)\b"), (-1, 1)),
    (re.compile(r"\b(?:down[\s_-]?right|south[\s_-]?east|se)\b"), (1, 1)),
    (re.compile(r"\b(?:up|north)\b"), (0, -1)),
    (re.compile(r"\b(?:down|south)\b"), (0, 1)),
    (re.compile(r"\b(?:left|west)\b"), (-1, 0)),
    (re.compile(r"\b(?:right|east)\b"), (1, 0)),
    (re.compile(r"\b(?:stay|wait|skip|none)\b"), STAY),
]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_direction(text: str) -> Offset:
    """Parse the first direction word found in ``text``.

    Raises:
        PolicyResponseError: If no direction word is present.
    """
    if not isinstance(text, str):
        raise PolicyResponseError(f"Direction must be text, got {type(text).__name__}")
    lowered = text.lower()
    best: Optional[Tuple[int, Offset]] = None
    for pattern, offset in _DIRECTION_PATTERNS:
        match = pattern.search(lowered)
        if match is not None and (best is None or match.start() < best[0]):
            best = (match.start(), offset)
    if best is None:
        raise PolicyResponseError(f"No direction in response: {text[:80]!r}")
    return best[1]


def _as_int(value: Any, integral: bool = True) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PolicyResponseError(f"Non-numeric component: {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise PolicyResponseError(f"Non-finite component: {value!r}")
        if integral and not value.is_integer():
            raise PolicyResponseError(f"Non-integral component: {value!r}")
        return math.floor(value)
    return value


def _check_step(offset: Offset) -> Offset:
    dx, dy = offset
    if abs(dx) > 1 or abs(dy) > 1:
        raise PolicyResponseError(f"Offset {offset} is more than one step")
    return offset


def _pair(raw: Any, keys: Sequence[Tuple[str, str]], integral: bool) -> Offset:
    if isinstance(raw, Position):
        return raw.x, raw.y
    if isinstance(raw, Mapping):
        for kx, ky in keys:
            if kx in raw and ky in raw:
                return _as_int(raw[kx], integral), _as_int(raw[ky], integral)
        raise PolicyResponseError(f"Mapping lacks {keys}: {raw!r}")
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return _as_int(raw[0], integral), _as_int(raw[1], integral)
    raise PolicyResponseError(f"Unsupported response shape: {raw!r}")


def coerce_offset(raw: Any) -> Offset:
    """Coerce a relative answer into a single-step offset.

    Accepts ``(dx, dy)`` pairs, mappings with ``dx``/``dy`` (or ``x``/``y``),
    direction words and JSON text of any of those.

    Raises:
        PolicyResponseError: Malformed, non-numeric or out-of-range answers.
    """
    if raw is None:
        raise PolicyResponseError("Empty response")
    if isinstance(raw, str):
        text = strip_code_fences(raw)
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            return parse_direction(text)
        if isinstance(decoded, str):
            return parse_direction(decoded)
        raw = decoded
    return _check_step(_pair(raw, (("dx", "dy"), ("x", "y")), integral=True))


def coerce_absolute(raw: Any, origin: Position) -> Offset:
    """Coerce an absolute ``{x, y}`` answer into an offset from ``origin``.

    Finite fractional coordinates are floored.

    Raises:
        PolicyResponseError: Malformed, non-numeric or more than one step away.
    """
    if raw is None:
        raise PolicyResponseError("Empty response")
    x, y = _pair(raw, (("x", "y"),), integral=False)
    return _check_step((x - origin.x, y - origin.y))


class OffsetMove(BaseModel):
    id: Optional[int] = None
    dx: int
    dy: int


class OffsetsAnswer(BaseModel):
    moves: List[OffsetMove]


_OFFSET_PAIRS = TypeAdapter(List[Tuple[int, int]])


def parse_offsets(text: str, request: PolicyRequest) -> Offset:
    """Pick the deciding entity's offset out of a batched offsets answer.

    Accepted forms: ``{"moves": [{"id": 3, "dx": 0, "dy": 1}, ...]}`` (matched
    by id when ids are present, otherwise by order) or ``[[dx, dy], ...]``
    (matched by order against ``request.enemy_ids``).
    """
    body = strip_code_fences(text)
    moves: List[OffsetMove]
    try:
        moves = OffsetsAnswer.model_validate_json(body).moves
    except ValidationError:
        try:
            pairs = _OFFSET_PAIRS.validate_json(body)
        except ValidationError as exc:
            raise PolicyResponseError(f"Unparsable offsets: {body[:80]!r}") from exc
        moves = [OffsetMove(dx=dx, dy=dy) for dx, dy in pairs]

    if any(m.id is not None for m in moves):
        matching = [m for m in moves if m.id == request.entity_id]
        if not matching:
            raise PolicyResponseError(f"No move for entity {request.entity_id}")
        move = matching[0]
    else:
        index = request.enemy_index
        if index < 0 or index >= len(moves):
            raise PolicyResponseError(
                f"Offsets list of length {len(moves)} has no entry {index}"
            )
        move = moves[index]
    return _check_step((move.dx, move.dy))


_GRID = TypeAdapter(List[List[Any]])


def parse_grid(text: str, width: int, height: int) -> List[List[str]]:
    """Parse a replacement grid (JSON rows or whitespace/comma separated lines).

    Tokens are normalized to lower-case strings.
    """
    body = strip_code_fences(text)
    try:
        rows: List[List[Any]] = _GRID.validate_json(body)
    except ValidationError:
        rows = []
        for line in body.splitlines():
            tokens = [tok for tok in re.split(r"[\s,]+", line.strip()) if tok]
            if len(tokens) == 1 and len(tokens[0]) == width:
                # Unseparated rows, one character per cell ("P..#").
                tokens = list(tokens[0])
            if tokens:
                rows.append(tokens)
    if len(rows) != height or any(len(row) != width for row in rows):
        raise PolicyResponseError(
            f"Replacement grid is not {width}x{height}: {len(rows)} rows"
        )
    return [[str(tok).strip().lower() for tok in row] for row in rows]


def infer_move_from_grid(
    grid: Sequence[Sequence[str]],
    origin: Position,
    tags: Sequence[str],
    claimed: Collection[Offset] = (),
) -> Offset:
    """Infer one entity's step from a replacement grid.

    Looks for one of the entity's tags (kind name or glyph) at its origin
    (stay) and then among the eight neighbours, skipping cells already
    attributed to an entity processed earlier. Matching cells farther away
    are ignored.

    Raises:
        PolicyResponseError: No cell within one step carries a tag.
    """
    height, width = len(grid), len(grid[0]) if grid else 0
    wanted = {t.lower() for t in tags}
    for dx, dy in (STAY,) + ALL_OFFSETS:
        x, y = origin.x + dx, origin.y + dy
        if not (0 <= x < width and 0 <= y < height):
            continue
        if (x, y) in claimed:
            continue
        if grid[y][x] in wanted:
            return (dx, dy)
    raise PolicyResponseError(
        f"No {sorted(wanted)} within one step of {origin.as_tuple()}"
    )
