"""External movement policy backends.

Every backend exposes ``async decide(request) -> Offset`` and is registered
under a name; :class:`pug_grid.components.ExternalPolicy` refers to that name.
Backends translate their native answer into a single step offset and raise
:class:`pug_grid.exceptions.PolicyResponseError` when they cannot. The
resolver bounds each call with a timeout and re-validates the offset against
the live occupancy grid, so a backend can never move an entity into an
occupied or blocked cell.

Backends:

* :class:`TextDirectionBackend`: language model answers a direction word.
* :class:`StructuredOffsetsBackend`: language model answers a JSON list of
  relative offsets, one per enemy.
* :class:`ReplacementGridBackend`: language model answers the whole grid after
  all enemies moved. Best-effort adapter onto the sequential protocol: one
  model call per turn, each entity's move inferred from the grid.
* :class:`CompiledFunctionBackend`: generated Python function body compiled
  into a restricted namespace and run in a child process that is killed
  when the decision times out.
* :class:`ScriptBackend`: any embedded-interpreter callable (sync or async)
  fed the serialized request.
"""

import inspect
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Set,
    Tuple,
)

from pug_grid.components import Position
from pug_grid.exceptions import PolicyResponseError
from pug_grid.external.prompts import (
    GRID_SYSTEM_PROMPT,
    NAVIGATOR_SYSTEM_PROMPT,
    OFFSETS_SYSTEM_PROMPT,
    grid_prompt,
    navigator_prompt,
    offsets_prompt,
)
from pug_grid.external.protocol import (
    PolicyRequest,
    coerce_absolute,
    coerce_offset,
    infer_move_from_grid,
    parse_direction,
    parse_grid,
    parse_offsets,
)
from pug_grid.external.sandbox import (
    DEFAULT_TIME_LIMIT,
    compile_decide_function,
    decision_payload,
    run_generated,
    run_in_daemon_thread,
    run_in_process,
)
from pug_grid.renderer.snapshot import GLYPHS
from pug_grid.types import EntityID, EntityKind, Offset

logger = logging.getLogger(__name__)

CompleteFn = Callable[[str, str], Awaitable[str]]
"""``(system_prompt, user_prompt) -> completion text``."""


class PolicyBackend(Protocol):
    async def decide(self, request: PolicyRequest) -> Offset: ...


class TextDirectionBackend:
    """Ask a language model for a single direction word."""

    def __init__(
        self, complete: CompleteFn, system_prompt: str = NAVIGATOR_SYSTEM_PROMPT
    ) -> None:
        self.complete = complete
        self.system_prompt = system_prompt

    async def decide(self, request: PolicyRequest) -> Offset:
        text = await self.complete(self.system_prompt, navigator_prompt(request))
        logger.debug("Navigator answer for entity %d: %r", request.entity_id, text)
        return parse_direction(text)


class StructuredOffsetsBackend:
    """Ask a language model for relative offsets of every enemy.

    The answer is order-matched (or id-matched) to the deciding entity; one
    model call is made per deciding entity so that later entities see the
    moves committed before them.
    """

    def __init__(
        self, complete: CompleteFn, system_prompt: str = OFFSETS_SYSTEM_PROMPT
    ) -> None:
        self.complete = complete
        self.system_prompt = system_prompt

    async def decide(self, request: PolicyRequest) -> Offset:
        text = await self.complete(self.system_prompt, offsets_prompt(request))
        return parse_offsets(text, request)


class ReplacementGridBackend:
    """Batched adapter for answers that replace the whole entity grid.

    The model is asked once per turn; the parsed grid is kept for the rest of
    that turn and every deciding entity's step is inferred from it. An entity
    asking twice marks a new resolution of the same turn number (after an
    undo or reset), so the grid is requested again. Cells already attributed
    to an earlier entity are not attributed twice. The grid is not trusted to
    respect collisions: the resolver validates each inferred step like any
    other decision.
    """

    def __init__(
        self, complete: CompleteFn, system_prompt: str = GRID_SYSTEM_PROMPT
    ) -> None:
        self.complete = complete
        self.system_prompt = system_prompt
        self._turn: Optional[int] = None
        self._grid: Optional[List[List[str]]] = None
        self._error: Optional[str] = None
        self._claimed: List[Tuple[int, int]] = []
        self._served: Set[EntityID] = set()

    async def _grid_for(self, request: PolicyRequest) -> List[List[str]]:
        if self._turn != request.turn or request.entity_id in self._served:
            self._turn = request.turn
            self._grid, self._error, self._claimed = None, None, []
            self._served = set()
            text = await self.complete(self.system_prompt, grid_prompt(request))
            try:
                self._grid = parse_grid(text, request.width, request.height)
            except PolicyResponseError as exc:
                self._error = str(exc)
        self._served.add(request.entity_id)
        if self._grid is None:
            raise PolicyResponseError(self._error or "No replacement grid")
        return self._grid

    async def decide(self, request: PolicyRequest) -> Offset:
        grid = await self._grid_for(request)
        origin = Position(*request.position)
        tags = [request.kind, GLYPHS[EntityKind(request.kind)]]
        dx, dy = infer_move_from_grid(grid, origin, tags, self._claimed)
        self._claimed.append((origin.x + dx, origin.y + dy))
        return (dx, dy)


class CompiledFunctionBackend:
    """Run a generated ``decide(context)`` body returning an absolute position.

    Each decision runs in a child process bounded by ``time_limit`` and
    terminated early if the resolver stops waiting. Compilation failures are
    recorded on ``error`` and every later decision degrades to "stay"
    (through ``PolicyResponseError``).
    """

    def __init__(
        self,
        source: str,
        name: str = "CustomEnemy",
        time_limit: Optional[float] = DEFAULT_TIME_LIMIT,
    ) -> None:
        self.name = name
        self.source = source
        self.time_limit = time_limit
        self.error: Optional[str] = None
        try:
            compile_decide_function(source)
        except (SyntaxError, ValueError) as exc:
            self.error = str(exc)
            logger.error("Failed to compile move function for %s: %s", name, exc)

    async def decide(self, request: PolicyRequest) -> Offset:
        if self.error is not None:
            raise PolicyResponseError(
                f"{self.name} has no move function: {self.error}"
            )
        job = (self.source, decision_payload(request))
        try:
            result = await run_in_process(run_generated, job, self.time_limit)
        except PolicyResponseError as exc:
            raise PolicyResponseError(
                f"{self.name} move function failed: {exc}"
            ) from exc
        return coerce_absolute(result, Position(*request.position))


class ScriptBackend:
    """Adapter for embedded interpreters.

    ``run`` receives ``request.to_dict()`` and returns either an absolute
    position (``absolute=True``) or a relative offset. Coroutine functions
    are awaited. Synchronous callables run on a daemon thread, so a timed-out
    call never blocks the turn but keeps running until it returns; pass
    ``isolated=True`` for a picklable ``run`` that should be killed instead.
    """

    def __init__(
        self,
        run: Callable[[Dict[str, Any]], Any],
        absolute: bool = True,
        isolated: bool = False,
        time_limit: Optional[float] = DEFAULT_TIME_LIMIT,
    ) -> None:
        self.run = run
        self.absolute = absolute
        self.isolated = isolated
        self.time_limit = time_limit

    async def decide(self, request: PolicyRequest) -> Offset:
        payload = request.to_dict()
        if inspect.iscoroutinefunction(self.run):
            result = await self.run(payload)
        elif self.isolated:
            result = await run_in_process(self.run, payload, self.time_limit)
        else:
            result = await run_in_daemon_thread(self.run, payload)
        if self.absolute:
            return coerce_absolute(result, Position(*request.position))
        return coerce_offset(result)
