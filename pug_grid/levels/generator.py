"""Procedural level generation.

Three entry points:

* :func:`default_level` reproduces the classic PuG board: the pug in the top
    left, two roaches near the bottom, the roach mother next to a wall cluster
    in the top right, plus a handful of seeded random walls.
* :func:`random_level` keeps the same cast but places it at random, with a
    minimum distance between the pug and every enemy and every enemy
    reachable from the pug.
* :func:`maze_level` does the same on a (partially opened) maze.

Terrain is decorative (codes 1/6/12 from an integer hash noise); the engine
never reads it.
"""

import logging
import random
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from pug_grid.components import (
    FleePolicy,
    PlayerInputPolicy,
    Position,
    SeekPolicy,
)
from pug_grid.config import GameConfig
from pug_grid.exceptions import LevelError
from pug_grid.levels.grid import EntityPlacement, Level
from pug_grid.types import WALL, AxisPreference, EntityKind
from pug_grid.utils.grid import chebyshev_distance
from pug_grid.utils.maze import (
    Coord,
    adjust_maze_wall_percentage,
    generate_perfect_maze,
    maze_to_obstacles,
    open_cells,
    reachable,
)

logger = logging.getLogger(__name__)

NOISE_SCALE = 0.2
TERRAIN_CODES = (1, 6, 12)
WALL_CLUSTER: Tuple[Coord, ...] = ((7, 0), (8, 0), (9, 0), (7, 1), (9, 1), (7, 2))
MAX_PLACEMENT_ATTEMPTS = 200

_MASK32 = 0xFFFFFFFF


def _int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def noise(x: float, y: float, seed: int = 0) -> float:
    """Integer hash noise in ``(-1, 1]``; the inputs are truncated to ints."""
    n = _int32(int(x + y * 57 + seed))
    n = _int32((n << 13) ^ n)
    hashed = _int32(n * _int32(n * n * 15731 + 789221) + 1376312589)
    return 1.0 - (hashed & 0x7FFFFFFF) / 1073741824.0


def generate_terrain(width: int, height: int, seed: int = 0) -> List[List[int]]:
    """Clustered terrain codes from :func:`noise`."""
    low, mid, high = TERRAIN_CODES
    terrain: List[List[int]] = []
    for y in range(height):
        row = []
        for x in range(width):
            value = noise(x * NOISE_SCALE, y * NOISE_SCALE, seed)
            if value < 0.33:
                row.append(low)
            elif value < 0.66:
                row.append(mid)
            else:
                row.append(high)
        terrain.append(row)
    return terrain


def in_cluster_region(width: int, x: int, y: int) -> bool:
    """True for the top-right 3x3 corner reserved for the wall cluster."""
    return x >= width - 3 and y <= 2


def generate_obstacles(
    width: int,
    height: int,
    rng: random.Random,
    count: int = 5,
    avoid: Iterable[Coord] = (),
    cluster: Sequence[Coord] = WALL_CLUSTER,
) -> List[List[int]]:
    """Wall cluster plus ``count`` random walls.

    Random walls never land on ``avoid`` cells or in the cluster corner.

    Raises:
        LevelError: Fewer than ``count`` free cells remain.
    """
    obstacles = [[0] * width for _ in range(height)]
    for x, y in cluster:
        if x < width and y < height:
            obstacles[y][x] = WALL
    blocked = set(avoid)
    candidates = [
        (x, y)
        for y in range(height)
        for x in range(width)
        if (x, y) not in blocked
        and not in_cluster_region(width, x, y)
        and obstacles[y][x] == 0
    ]
    if len(candidates) < count:
        raise LevelError(f"Cannot place {count} obstacles on a {width}x{height} grid")
    for x, y in rng.sample(candidates, count):
        obstacles[y][x] = WALL
    return obstacles


def default_cast() -> List[EntityPlacement]:
    """The pug, two roaches and the roach mother at their classic cells."""
    return [
        EntityPlacement(EntityKind.PLAYER, Position(1, 1), PlayerInputPolicy(), "pug"),
        EntityPlacement(
            EntityKind.SEEKER,
            Position(2, 8),
            SeekPolicy(axis_preference=AxisPreference.VERTICAL),
            "roach",
        ),
        EntityPlacement(
            EntityKind.SEEKER,
            Position(7, 8),
            SeekPolicy(axis_preference=AxisPreference.VERTICAL),
            "roach",
        ),
        EntityPlacement(EntityKind.FLEER, Position(8, 2), FleePolicy(), "roach mother"),
    ]


def _resolve_seed(seed: Optional[int]) -> int:
    return random.randrange(1000) if seed is None else seed


def default_level(seed: Optional[int] = None, obstacle_count: int = 5) -> Level:
    """The classic 10x10 PuG board."""
    seed = _resolve_seed(seed)
    width = height = 10
    cast = default_cast()
    rng = random.Random(seed)
    obstacles = generate_obstacles(
        width,
        height,
        rng,
        count=obstacle_count,
        avoid=[p.position.as_tuple() for p in cast],
    )
    level = Level(
        width=width,
        height=height,
        terrain=generate_terrain(width, height, seed),
        obstacles=obstacles,
        seed=seed,
    )
    for placement in cast:
        level.add(placement)
    logger.debug("Built default level with seed %d", seed)
    return level


def place_cast(
    level: Level,
    rng: random.Random,
    cast: Sequence[EntityPlacement],
    min_distance: int,
) -> None:
    """Re-position ``cast`` at random free cells of ``level``.

    The first placement must be the player. Each enemy is at least
    ``min_distance`` (Chebyshev) away from the player, and all enemies are
    reachable from the player over open cells.

    Raises:
        LevelError: No valid arrangement found.
    """
    if not cast or cast[0].kind != EntityKind.PLAYER:
        raise LevelError("The cast must start with the player")
    maze = open_cells(level.obstacles)
    free = sorted(pos for pos, is_open in maze.items() if is_open)
    if len(free) < len(cast):
        raise LevelError("Not enough open cells for every entity")
    for _ in range(MAX_PLACEMENT_ATTEMPTS):
        player_cell = rng.choice(free)
        far = [
            cell
            for cell in free
            if chebyshev_distance(Position(*cell), Position(*player_cell))
            >= min_distance
        ]
        if len(far) < len(cast) - 1:
            continue
        enemy_cells = rng.sample(far, len(cast) - 1)
        if not reachable(maze, player_cell, enemy_cells):
            continue
        cells: List[Coord] = [player_cell, *enemy_cells]
        for placement, (x, y) in zip(cast, cells):
            level.add(
                EntityPlacement(
                    kind=placement.kind,
                    position=Position(x, y),
                    policy=placement.policy,
                    name=placement.name,
                    flying=placement.flying,
                )
            )
        return
    raise LevelError(
        f"No placement with min distance {min_distance} after "
        f"{MAX_PLACEMENT_ATTEMPTS} attempts"
    )


def random_level(config: GameConfig = GameConfig()) -> Level:
    """Random walls, random placement of the classic cast."""
    seed = _resolve_seed(config.seed)
    rng = random.Random(seed)
    obstacles = generate_obstacles(
        config.width,
        config.height,
        rng,
        count=config.obstacle_count,
        cluster=_cluster_for(config.width, config.height),
    )
    level = Level(
        width=config.width,
        height=config.height,
        terrain=generate_terrain(config.width, config.height, seed),
        obstacles=obstacles,
        seed=seed,
    )
    place_cast(level, rng, default_cast(), config.min_spawn_distance)
    return level


def maze_level(
    config: GameConfig = GameConfig(), wall_percentage: float = 0.5
) -> Level:
    """Classic cast on a maze keeping ``wall_percentage`` of its walls."""
    if not 0.0 <= wall_percentage <= 1.0:
        raise ValueError("wall_percentage must be within [0, 1]")
    seed = _resolve_seed(config.seed)
    rng = random.Random(seed)
    maze = generate_perfect_maze(config.width, config.height, rng)
    maze = adjust_maze_wall_percentage(maze, wall_percentage, rng)
    level = Level(
        width=config.width,
        height=config.height,
        terrain=generate_terrain(config.width, config.height, seed),
        obstacles=maze_to_obstacles(maze, config.width, config.height),
        seed=seed,
    )
    place_cast(level, rng, default_cast(), config.min_spawn_distance)
    return level


def _cluster_for(width: int, height: int) -> List[Coord]:
    """The wall cluster shifted to the top-right corner of any grid."""
    shift = width - 10
    cells: Set[Coord] = {(x + shift, y) for x, y in WALL_CLUSTER}
    return sorted((x, y) for x, y in cells if 0 <= x < width and y < height)
