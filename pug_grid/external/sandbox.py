"""Running untrusted decision code.

Generated move functions are compiled against a whitelist of builtins and run
in a child process. The process is terminated as soon as the caller stops
waiting (time limit or cancellation by the resolver's timeout), so a body
that never returns cannot outlive its turn.

Callables that cannot cross a process boundary (embedded interpreters,
closures) run on a daemon thread instead. The turn still moves on when the
caller gives up, but the thread itself runs until the callable returns.
"""

import asyncio
import builtins
import logging
import math
import multiprocessing
import threading
from multiprocessing.connection import Connection
from types import SimpleNamespace
from typing import Any, Callable, Dict, Optional, Tuple

from pug_grid.exceptions import PolicyResponseError
from pug_grid.external.protocol import PolicyRequest

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 5.0
POLL_INTERVAL = 0.01

SAFE_BUILTINS: Dict[str, Any] = {
    name: getattr(builtins, name)
    for name in (
        "abs",
        "all",
        "any",
        "bool",
        "dict",
        "enumerate",
        "filter",
        "float",
        "int",
        "isinstance",
        "len",
        "list",
        "map",
        "max",
        "min",
        "next",
        "range",
        "reversed",
        "round",
        "set",
        "sorted",
        "str",
        "sum",
        "tuple",
        "zip",
    )
}


def compile_decide_function(source: str) -> Callable[[Any], Any]:
    """Compile a generated function body into ``decide(context)``.

    The body runs with a whitelist of builtins and the ``math`` module only.
    Dunder access is refused outright. This narrows what generated code can
    reach; it is not a security boundary.

    Raises:
        SyntaxError: The body does not compile.
        ValueError: The body is empty or touches dunder attributes.
    """
    if not source.strip():
        raise ValueError("Empty function body")
    if "__" in source:
        raise ValueError("Dunder names are not allowed in generated code")
    body = "\n".join("    " + line for line in source.strip().splitlines())
    code = compile(f"def decide(context):\n{body}\n", "<generated-policy>", "exec")
    namespace: Dict[str, Any] = {"__builtins__": SAFE_BUILTINS, "math": math}
    exec(code, namespace)
    return namespace["decide"]


def decision_payload(request: PolicyRequest) -> Dict[str, Any]:
    """``request.to_dict()`` plus the passable cells, picklable as a whole."""
    payload = request.to_dict()
    payload["passable"] = [
        [x, y]
        for y in range(request.height)
        for x in range(request.width)
        if request.is_passable(x, y)
    ]
    return payload


def make_context(payload: Dict[str, Any]) -> SimpleNamespace:
    """Build the ``context`` object handed to generated code."""
    passable = {(x, y) for x, y in payload["passable"]}
    x, y = payload["position"]
    player = payload["player"]
    return SimpleNamespace(
        entities=[
            {
                "id": info["id"],
                "type": info["kind"],
                "name": info["name"],
                "position": {"x": info["x"], "y": info["y"]},
            }
            for info in payload["entities"]
        ],
        my_position={"x": x, "y": y},
        player={"x": player[0], "y": player[1]} if player is not None else None,
        width=payload["width"],
        height=payload["height"],
        turn=payload["turn"],
        is_valid=lambda cx, cy: (int(cx), int(cy)) in passable,
    )


def run_generated(job: Tuple[str, Dict[str, Any]]) -> Any:
    """Child-process entry point: compile ``source`` and call it on ``payload``."""
    source, payload = job
    return compile_decide_function(source)(make_context(payload))


def _child_main(conn: Connection, fn: Callable[[Any], Any], arg: Any) -> None:
    try:
        message = ("ok", fn(arg))
    except Exception as exc:
        message = ("error", f"{type(exc).__name__}: {exc}")
    try:
        conn.send(message)
    except Exception as exc:
        conn.send(("error", f"Result cannot be returned: {exc}"))
    finally:
        conn.close()


def _stop(process: multiprocessing.Process) -> None:
    if process.is_alive():
        process.terminate()
        process.join(1.0)
        if process.is_alive():
            process.kill()
    process.join()


async def run_in_process(
    fn: Callable[[Any], Any],
    arg: Any,
    time_limit: Optional[float] = DEFAULT_TIME_LIMIT,
) -> Any:
    """Run ``fn(arg)`` in a child process and return its result.

    ``fn`` and ``arg`` must be picklable. The child is terminated when
    ``time_limit`` passes or when the awaiting task is cancelled.

    Raises:
        PolicyResponseError: ``fn`` raised, the child died without answering,
            or the time limit passed.
    """
    loop = asyncio.get_running_loop()
    receiver, sender = multiprocessing.Pipe(duplex=False)
    process = multiprocessing.Process(
        target=_child_main, args=(sender, fn, arg), daemon=True
    )
    process.start()
    sender.close()
    deadline = None if time_limit is None else loop.time() + time_limit
    try:
        while not receiver.poll():
            if deadline is not None and loop.time() >= deadline:
                raise PolicyResponseError(f"Decision exceeded {time_limit}s")
            await asyncio.sleep(POLL_INTERVAL)
        try:
            status, value = receiver.recv()
        except EOFError as exc:
            raise PolicyResponseError(
                f"Decision process exited with code {process.exitcode}"
            ) from exc
    finally:
        receiver.close()
        _stop(process)
    if status == "error":
        raise PolicyResponseError(value)
    return value


async def run_in_daemon_thread(fn: Callable[[Any], Any], arg: Any) -> Any:
    """Run ``fn(arg)`` on a daemon thread that nothing waits to join."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def settle(result: Any, exc: Optional[BaseException]) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def target() -> None:
        try:
            result, exc = fn(arg), None
        except Exception as error:
            result, exc = None, error
        try:
            loop.call_soon_threadsafe(settle, result, exc)
        except RuntimeError:
            logger.debug("Loop closed before %r returned", fn)

    threading.Thread(target=target, name="pug-script", daemon=True).start()
    return await future
