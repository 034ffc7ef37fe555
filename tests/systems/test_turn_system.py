import multiprocessing
import random
import time

import pytest

from pug_grid.actions import MOVE_ACTIONS, Action
from pug_grid.components import Position
from pug_grid.exceptions import TurnAbortedError
from pug_grid.external.backends import CompiledFunctionBackend
from pug_grid.levels import default_level, to_state
from pug_grid.policies import DECIDE_FN_REGISTRY
from pug_grid.state import State
from pug_grid.systems.turn import processing_order, resolve_turn, step
from pug_grid.types import ORTHOGONAL_OFFSETS, PolicyKind, TurnPhase
from tests.test_utils import (
    FailingBackend,
    FixedBackend,
    SlowBackend,
    make_external,
    make_fleer,
    make_player,
    make_seeker,
    make_state,
    positions,
    run,
)


def test_seeker_targets_new_player_position() -> None:
    state = make_state([make_player(1, 1), make_seeker(2, 8, 8)])
    after = step(state, Action.DOWN_RIGHT)
    assert positions(after) == {1: (2, 2), 2: (7, 7)}
    assert after.turn == 1
    assert after.message is None
    # Committed states are never mutated
    assert positions(state) == {1: (1, 1), 2: (8, 8)}
    assert state.turn == 0


def test_pointer_vector_input() -> None:
    state = make_state([make_player(1, 1), make_seeker(2, 8, 8)])
    assert positions(step(state, (6, 3))) == {1: (2, 2), 2: (7, 7)}


def test_fleer_aligned_with_player_nudges_sideways() -> None:
    for seed in range(10):
        state = make_state([make_player(2, 3), make_fleer(2, 2, 1)], seed=seed)
        after = step(state, Action.UP)
        assert after.entity[1].position == Position(2, 2)
        assert after.entity[2].position.as_tuple() in {(1, 0), (3, 0)}


@pytest.mark.parametrize(
    "first_order, second_order, expected",
    [
        (1, 2, {2: (5, 5), 3: (6, 5)}),
        (2, 1, {2: (4, 5), 3: (5, 5)}),
    ],
)
def test_lower_movement_order_claims_contested_cell(
    first_order, second_order, expected
) -> None:
    state = make_state(
        [
            make_player(5, 8),
            make_seeker(2, 4, 4, order=first_order),
            make_seeker(3, 6, 4, order=second_order),
        ]
    )
    after = step(state, Action.WAIT)
    assert {eid: positions(after)[eid] for eid in (2, 3)} == expected


def test_player_vacated_cell_is_free_for_enemies() -> None:
    state = make_state([make_player(5, 5), make_seeker(2, 6, 6)])
    assert positions(step(state, Action.LEFT)) == {1: (4, 5), 2: (5, 5)}


def test_blocked_player_still_advances_turn() -> None:
    state = make_state([make_player(1, 1), make_seeker(2, 8, 8)], walls=[(2, 1)])
    after = step(state, Action.RIGHT)
    assert after.entity[1].position == Position(1, 1)
    assert after.entity[2].position == Position(7, 7)
    assert after.turn == 1


def test_flying_enemy_crosses_walls() -> None:
    state = make_state(
        [make_player(2, 2), make_seeker(2, 5, 5, flying=True)], walls=[(4, 4)]
    )
    assert step(state, Action.WAIT).entity[2].position == Position(4, 4)


def test_processing_order() -> None:
    entities = [
        make_player(0, 0),
        make_seeker(5, 1, 1, order=2),
        make_seeker(4, 2, 2, order=1),
        make_seeker(3, 3, 3, order=2),
    ]
    assert [e.id for e in processing_order(entities)] == [4, 3, 5]


def test_phase_hook() -> None:
    phases = []
    state = make_state([make_player(1, 1)])
    run(resolve_turn(state, Action.WAIT, on_phase=phases.append))
    assert phases == [
        TurnPhase.RESOLVING_PLAYER,
        TurnPhase.RESOLVING_ENEMIES,
        TurnPhase.COMMITTED,
    ]


def test_failing_builtin_policy_stays(monkeypatch) -> None:
    def broken(view, entity, player_input):
        raise RuntimeError("boom")

    monkeypatch.setitem(DECIDE_FN_REGISTRY, PolicyKind.SEEK, broken)
    state = make_state([make_player(1, 1), make_seeker(2, 8, 8)])
    after = step(state, Action.DOWN)
    assert positions(after) == {1: (1, 2), 2: (8, 8)}


# --- Structural failures ---


def corrupt_states():
    good = make_state([make_player(1, 1), make_seeker(2, 5, 5)])
    return [
        make_state([make_seeker(2, 5, 5)]),
        make_state([make_player(1, 1), make_player(3, 3, eid=2)]),
        make_state([make_player(1, 1), make_seeker(2, 1, 1)]),
        make_state([make_player(1, 1), make_seeker(2, 10, 5)]),
        State(
            width=good.width,
            height=good.height,
            terrain=good.terrain,
            obstacles=good.obstacles[:-1],
            entity=good.entity,
        ),
    ]


@pytest.mark.parametrize("state", corrupt_states())
def test_structural_failure_aborts(state) -> None:
    with pytest.raises(TurnAbortedError):
        step(state, Action.RIGHT)


# --- External policies ---


def test_external_backend_moves_entity() -> None:
    backend = FixedBackend((0, 1))
    state = make_state([make_player(1, 1), make_external(2, 5, 5)])
    after = step(state, Action.WAIT, backends={"bot": backend})
    assert after.entity[2].position == Position(5, 6)
    assert backend.requests[0].entity_id == 2
    assert backend.requests[0].turn == 0


@pytest.mark.parametrize(
    "answer",
    [
        "nonsense",
        (float("nan"), 0),
        (0, float("inf")),
        (2, 0),
        {"dx": "a", "dy": 0},
        [1, 0, 0],
        None,
    ],
)
def test_malformed_external_answer_stays(answer) -> None:
    state = make_state([make_player(1, 1), make_external(2, 5, 5)])
    after = step(state, Action.WAIT, backends={"bot": FixedBackend(answer)})
    assert after.entity[2].position == Position(5, 5)
    assert after.turn == 1


def test_external_answer_outside_direction_set_stays() -> None:
    bot = make_external(2, 5, 5, directions=ORTHOGONAL_OFFSETS)
    state = make_state([make_player(1, 1), bot])
    after = step(state, Action.WAIT, backends={"bot": FixedBackend((1, 1))})
    assert after.entity[2].position == Position(5, 5)


def test_external_answer_into_wall_or_entity_stays() -> None:
    state = make_state(
        [make_player(1, 1), make_external(2, 5, 5), make_seeker(3, 5, 6, order=9)],
        walls=[(6, 5)],
    )
    for answer in [(1, 0), (0, 1)]:
        after = step(state, Action.WAIT, backends={"bot": FixedBackend(answer)})
        assert after.entity[2].position == Position(5, 5)


def test_external_timeout_stays_and_reports() -> None:
    state = make_state([make_player(1, 1), make_external(2, 5, 5)])
    after = run(
        resolve_turn(
            state, Action.WAIT, backends={"bot": SlowBackend(1.0)}, timeout=0.05
        )
    )
    assert after.entity[2].position == Position(5, 5)
    assert "timed out" in after.message


def test_endless_generated_code_cannot_hang_step() -> None:
    state = make_state([make_player(1, 1), make_external(2, 5, 5)])
    backends = {"bot": CompiledFunctionBackend("while True:\n    pass")}
    started = time.monotonic()
    after = step(state, Action.WAIT, backends=backends, timeout=0.3)
    assert time.monotonic() - started < 5
    assert after.entity[2].position == Position(5, 5)
    assert "timed out" in after.message
    assert multiprocessing.active_children() == []


def test_unreachable_backend_stays_and_reports() -> None:
    state = make_state([make_player(1, 1), make_external(2, 5, 5)])
    backends = {"bot": FailingBackend(ConnectionError("refused"))}
    after = step(state, Action.WAIT, backends=backends)
    assert after.entity[2].position == Position(5, 5)
    assert "unreachable" in after.message


def test_missing_backend_stays_and_reports() -> None:
    state = make_state([make_player(1, 1), make_external(2, 5, 5, backend="gone")])
    after = step(state, Action.WAIT)
    assert after.entity[2].position == Position(5, 5)
    assert "gone" in after.message


def test_external_decisions_are_sequential() -> None:
    backend = FixedBackend((-1, 0))
    state = make_state(
        [
            make_player(0, 9),
            make_external(2, 5, 5, order=2),
            make_external(3, 7, 5, order=1),
        ]
    )
    after = step(state, Action.WAIT, backends={"bot": backend})
    assert [r.entity_id for r in backend.requests] == [3, 2]
    # Entity 2 decided after entity 3 had already moved
    seen = {info.id: (info.x, info.y) for info in backend.requests[1].entities}
    assert seen[3] == (6, 5)
    assert positions(after) == {1: (0, 9), 2: (4, 5), 3: (6, 5)}


def test_later_external_cannot_take_claimed_cell() -> None:
    backends = {
        "bot": FixedBackend({"dx": 1, "dy": 0}),
        "down": FixedBackend((0, 1)),
    }
    clash = make_state(
        [
            make_player(0, 0),
            make_external(2, 4, 5, order=1),
            make_external(3, 5, 4, order=2, backend="down"),
        ]
    )
    after = step(clash, Action.WAIT, backends=backends)
    assert after.entity[2].position == Position(5, 5)
    assert after.entity[3].position == Position(5, 4)


# --- Invariants over many turns ---


def run_random_game(seed: int, turns: int = 30):
    state = to_state(default_level(seed=seed))
    rng = random.Random(seed)
    history = [state]
    for _ in range(turns):
        state = step(state, rng.choice(MOVE_ACTIONS + [Action.WAIT]))
        history.append(state)
    return history


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_invariants_hold_every_turn(seed) -> None:
    for state in run_random_game(seed):
        cells = [e.position for e in state.entity.values()]
        assert len(cells) == len(set(cells))
        for entity in state.entity.values():
            pos = entity.position
            assert 0 <= pos.x < state.width and 0 <= pos.y < state.height
            if not entity.flying:
                assert not state.is_wall(pos.x, pos.y)


def test_runs_are_deterministic() -> None:
    first = [positions(s) for s in run_random_game(7)]
    second = [positions(s) for s in run_random_game(7)]
    assert first == second
