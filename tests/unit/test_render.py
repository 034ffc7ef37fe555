from pug_grid.renderer import TextureRenderer, snapshot, state_to_ascii
from pug_grid.renderer.texture import (
    ENTITY_COLORS,
    TERRAIN_COLORS,
    WALL_COLOR,
    render_array,
)
from pug_grid.types import EntityKind
from tests.test_utils import make_fleer, make_player, make_seeker, make_state


def sample_state():
    return make_state(
        [make_player(1, 1), make_fleer(3, 2, 2), make_seeker(2, 3, 0)],
        width=4,
        height=4,
        walls=[(0, 0)],
        turn=5,
    )


def test_snapshot() -> None:
    snap = snapshot(sample_state())
    assert snap.turn == 5
    assert [e.id for e in snap.entities] == [1, 2, 3]
    assert snap.entity_grid[1][1] == "player"
    assert snap.entity_grid[2][2] == "fleer"
    assert snap.entity_grid[0][3] == "seeker"
    assert snap.entity_grid[0][0] is None


def test_state_to_ascii() -> None:
    assert state_to_ascii(sample_state()) == "#..S\n.P..\n..F.\n...."


def test_texture_renderer_colors() -> None:
    state = sample_state()
    img = TextureRenderer(resolution=40).render(state)
    assert img.size == (40, 40)
    assert img.getpixel((5, 5)) == WALL_COLOR
    assert img.getpixel((15, 15)) == ENTITY_COLORS[EntityKind.PLAYER]
    assert img.getpixel((25, 25)) == ENTITY_COLORS[EntityKind.FLEER]
    assert img.getpixel((35, 35)) == TERRAIN_COLORS[1]


def test_render_array_shape() -> None:
    assert render_array(sample_state(), resolution=40).shape == (40, 40, 4)
