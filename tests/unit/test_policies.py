import pytest

from pug_grid.components import Position
from pug_grid.policies import (
    DECIDE_FN_REGISTRY,
    flee_decide,
    player_input_decide,
    seek_decide,
    step_candidates,
    validate_destination,
)
from pug_grid.types import (
    ALL_OFFSETS,
    ORTHOGONAL_OFFSETS,
    AxisPreference,
    PolicyKind,
)
from tests.test_utils import (
    make_fleer,
    make_player,
    make_seeker,
    make_state,
    make_view,
)


@pytest.mark.parametrize(
    "start, player_input, expected",
    [
        ((2, 2), (1, 0), (3, 2)),
        ((2, 2), (-1, -1), (1, 1)),
        ((2, 2), (0, 0), (2, 2)),
        # Pointer vectors are reduced to their sign
        ((2, 2), (5, -3), (3, 1)),
        ((2, 2), (0, 7), (2, 3)),
        # Clamped at the border
        ((0, 0), (-1, -1), (0, 0)),
        ((9, 9), (1, 0), (9, 9)),
        ((0, 5), (-1, 1), (0, 6)),
    ],
)
def test_player_input_decide(start, player_input, expected) -> None:
    state = make_state([make_player(*start)])
    view = make_view(state, exclude=1)
    dest = player_input_decide(view, state.entity[1], player_input)
    assert dest.as_tuple() == expected


def test_player_input_none_stays() -> None:
    state = make_state([make_player(2, 2)])
    view = make_view(state, exclude=1)
    assert player_input_decide(view, state.entity[1], None) == Position(2, 2)


def test_player_input_blocked_by_wall_or_entity() -> None:
    state = make_state(
        [make_player(2, 2), make_seeker(2, 2, 3)], walls=[(3, 2)]
    )
    view = make_view(state, exclude=1)
    player = state.entity[1]
    assert player_input_decide(view, player, (1, 0)) == Position(2, 2)
    assert player_input_decide(view, player, (0, 1)) == Position(2, 2)
    assert player_input_decide(view, player, (-1, 0)) == Position(1, 2)


@pytest.mark.parametrize(
    "dx, dy, axis, expected",
    [
        (1, 1, AxisPreference.VERTICAL, [(1, 1), (0, 1), (1, 0)]),
        (1, 1, AxisPreference.HORIZONTAL, [(1, 1), (1, 0), (0, 1)]),
        (0, -1, AxisPreference.VERTICAL, [(0, -1)]),
        (-1, 0, AxisPreference.VERTICAL, [(-1, 0)]),
        (0, 0, AxisPreference.VERTICAL, []),
    ],
)
def test_step_candidates(dx, dy, axis, expected) -> None:
    assert step_candidates(dx, dy, axis) == expected


def test_seek_takes_diagonal_first() -> None:
    state = make_state([make_player(2, 2), make_seeker(2, 5, 5)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(4, 4)


def test_seek_falls_back_to_preferred_axis() -> None:
    state = make_state([make_player(2, 2), make_seeker(2, 5, 5)], walls=[(4, 4)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(5, 4)


def test_seek_horizontal_preference() -> None:
    seeker = make_seeker(2, 5, 5, axis=AxisPreference.HORIZONTAL)
    state = make_state([make_player(2, 2), seeker], walls=[(4, 4)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(4, 5)


def test_seek_other_axis_then_stay() -> None:
    state = make_state(
        [make_player(2, 2), make_seeker(2, 5, 5)], walls=[(4, 4), (5, 4)]
    )
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(4, 5)

    boxed = make_state(
        [make_player(2, 2), make_seeker(2, 5, 5)], walls=[(4, 4), (5, 4), (4, 5)]
    )
    view = make_view(boxed, exclude=2)
    assert seek_decide(view, boxed.entity[2]) == Position(5, 5)


def test_seek_aligned_moves_straight() -> None:
    state = make_state([make_player(5, 2), make_seeker(2, 5, 5)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(5, 4)


def test_seek_adjacent_to_player_stays() -> None:
    # The only candidate is the player's own (occupied) cell.
    state = make_state([make_player(5, 4), make_seeker(2, 5, 5)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(5, 5)


def test_seek_explicit_target() -> None:
    state = make_state(
        [make_player(0, 0), make_seeker(2, 5, 5, target=3), make_seeker(3, 8, 5)]
    )
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(6, 5)


def test_seek_missing_target_stays() -> None:
    state = make_state([make_player(0, 0), make_seeker(2, 5, 5, target=42)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(5, 5)


def test_flying_seeker_crosses_walls() -> None:
    seeker = make_seeker(2, 5, 5, flying=True)
    state = make_state([make_player(2, 2), seeker], walls=[(4, 4)])
    view = make_view(state, exclude=2)
    assert seek_decide(view, state.entity[2]) == Position(4, 4)


def test_flee_moves_away() -> None:
    state = make_state([make_player(3, 3), make_fleer(2, 5, 5)])
    view = make_view(state, exclude=2)
    assert flee_decide(view, state.entity[2]) == Position(6, 6)


def test_flee_aligned_is_deterministic() -> None:
    state = make_state([make_player(5, 2), make_fleer(2, 5, 5)], seed=7)
    first = flee_decide(make_view(state, exclude=2), state.entity[2])
    second = flee_decide(make_view(state, exclude=2), state.entity[2])
    assert first == second
    assert first.as_tuple() in {(4, 6), (6, 6)}


def test_flee_cornered_stays() -> None:
    state = make_state([make_player(7, 7), make_fleer(2, 9, 9)])
    view = make_view(state, exclude=2)
    assert flee_decide(view, state.entity[2]) == Position(9, 9)


def test_validate_destination() -> None:
    state = make_state([make_player(5, 5), make_seeker(2, 6, 5)], walls=[(4, 4)])
    view = make_view(state, exclude=1)
    player = state.entity[1]

    def check(proposal, directions=ALL_OFFSETS):
        return validate_destination(view, player, Position(*proposal), directions)

    assert check((5, 4)) == Position(5, 4)
    assert check((5, 5)) == Position(5, 5)
    # More than one step
    assert check((7, 5)) == Position(5, 5)
    # Wall and occupied cells
    assert check((4, 4)) == Position(5, 5)
    assert check((6, 5)) == Position(5, 5)
    # Diagonal outside an orthogonal direction set
    assert check((4, 6), ORTHOGONAL_OFFSETS) == Position(5, 5)
    assert check((4, 5), ORTHOGONAL_OFFSETS) == Position(4, 5)


def test_registry_covers_builtin_kinds() -> None:
    assert set(DECIDE_FN_REGISTRY) == {
        PolicyKind.PLAYER_INPUT,
        PolicyKind.SEEK,
        PolicyKind.FLEE,
    }
