import random

import pytest

from pug_grid.components import PlayerInputPolicy, Position, SeekPolicy
from pug_grid.config import GameConfig
from pug_grid.exceptions import LevelError
from pug_grid.levels import (
    EntityPlacement,
    Level,
    default_level,
    from_state,
    maze_level,
    random_level,
    to_state,
)
from pug_grid.levels.generator import (
    TERRAIN_CODES,
    WALL_CLUSTER,
    generate_obstacles,
    generate_terrain,
    noise,
)
from pug_grid.types import WALL, EntityKind
from pug_grid.utils.grid import chebyshev_distance
from pug_grid.utils.maze import open_cells, reachable


def empty_level(width: int = 4, height: int = 4) -> Level:
    return Level(
        width=width,
        height=height,
        terrain=[[1] * width for _ in range(height)],
        obstacles=[[0] * width for _ in range(height)],
    )


def player_at(x: int, y: int) -> EntityPlacement:
    return EntityPlacement(EntityKind.PLAYER, Position(x, y), PlayerInputPolicy())


def seeker_at(x: int, y: int) -> EntityPlacement:
    return EntityPlacement(EntityKind.SEEKER, Position(x, y), SeekPolicy())


def wall_cells(level: Level):
    return {
        (x, y)
        for y, row in enumerate(level.obstacles)
        for x, value in enumerate(row)
        if value == WALL
    }


def test_default_level_layout() -> None:
    level = default_level(seed=3)
    assert (level.width, level.height) == (10, 10)
    assert [p.position.as_tuple() for p in level.placements] == [
        (1, 1),
        (2, 8),
        (7, 8),
        (8, 2),
    ]
    assert [p.kind for p in level.placements] == [
        EntityKind.PLAYER,
        EntityKind.SEEKER,
        EntityKind.SEEKER,
        EntityKind.FLEER,
    ]
    walls = wall_cells(level)
    assert set(WALL_CLUSTER) <= walls
    assert len(walls) == len(WALL_CLUSTER) + 5
    for p in level.placements:
        assert p.position.as_tuple() not in walls


def test_default_level_is_reproducible() -> None:
    assert default_level(seed=11).obstacles == default_level(seed=11).obstacles
    assert default_level(seed=11).terrain == default_level(seed=11).terrain


def test_terrain_codes() -> None:
    terrain = generate_terrain(10, 10, seed=4)
    assert {code for row in terrain for code in row} <= set(TERRAIN_CODES)
    assert -1.0 < noise(3, 4, 5) <= 1.0


def test_generate_obstacles_avoids_cells() -> None:
    avoid = [(x, y) for x in range(4) for y in range(4) if (x, y) != (0, 3)]
    obstacles = generate_obstacles(
        4, 4, random.Random(0), count=1, avoid=avoid, cluster=()
    )
    assert obstacles[3][0] == WALL


def test_generate_obstacles_not_enough_room() -> None:
    with pytest.raises(LevelError):
        generate_obstacles(3, 3, random.Random(0), count=20)


def test_to_state_allocates_ids_in_order() -> None:
    state = to_state(default_level(seed=3))
    assert sorted(state.entity) == [1, 2, 3, 4]
    assert state.entity[1].kind == EntityKind.PLAYER
    assert state.entity[1].position == Position(1, 1)
    assert [state.entity[i].movement_order for i in (1, 2, 3, 4)] == [0, 1, 2, 3]
    assert state.turn == 0
    assert state.seed == 3


def test_from_state_round_trip() -> None:
    state = to_state(default_level(seed=8))
    again = to_state(from_state(state))
    assert again.entity == state.entity
    assert again.obstacles == state.obstacles


def test_random_level_constraints() -> None:
    config = GameConfig(seed=5)
    level = random_level(config)
    player, *enemies = level.placements
    assert player.kind == EntityKind.PLAYER
    assert len(enemies) == 3
    for enemy in enemies:
        assert chebyshev_distance(player.position, enemy.position) >= 4
    assert reachable(
        open_cells(level.obstacles),
        player.position.as_tuple(),
        [e.position.as_tuple() for e in enemies],
    )
    assert random_level(config).placements == level.placements


def test_maze_level_is_playable() -> None:
    level = maze_level(GameConfig(seed=2), wall_percentage=0.5)
    level.validate()
    walls = wall_cells(level)
    assert walls
    for p in level.placements:
        assert p.position.as_tuple() not in walls


def test_level_rejects_bad_layers() -> None:
    with pytest.raises(LevelError):
        Level(width=2, height=2, terrain=[[1, 1]], obstacles=[[0, 0], [0, 0]])
    with pytest.raises(LevelError):
        Level(width=0, height=2, terrain=[], obstacles=[])


def test_level_add_checks_cells() -> None:
    level = empty_level()
    level.set_wall(Position(2, 2))
    level.add(player_at(0, 0))
    with pytest.raises(LevelError):
        level.add(player_at(1, 1))
    with pytest.raises(LevelError):
        level.add(seeker_at(0, 0))
    with pytest.raises(LevelError):
        level.add(seeker_at(2, 2))
    with pytest.raises(LevelError):
        level.add(seeker_at(4, 0))
    level.add(seeker_at(3, 3))
    assert level.placement_at(Position(3, 3)).kind == EntityKind.SEEKER


def test_validate_requires_player() -> None:
    level = empty_level()
    level.add(seeker_at(1, 1))
    with pytest.raises(LevelError):
        level.validate()
    with pytest.raises(LevelError):
        to_state(level)
