import random

from pug_grid.types import ORTHOGONAL_OFFSETS, WALL
from pug_grid.utils.maze import (
    adjust_maze_wall_percentage,
    bfs_path,
    generate_perfect_maze,
    maze_to_obstacles,
    open_cells,
    reachable,
)


def test_perfect_maze_is_connected() -> None:
    maze = generate_perfect_maze(9, 9, random.Random(1))
    floor = [pos for pos, is_open in maze.items() if is_open]
    assert all(
        bfs_path(maze, (0, 0), pos, ORTHOGONAL_OFFSETS) for pos in floor
    )


def test_adjust_wall_percentage_bounds() -> None:
    maze = generate_perfect_maze(9, 9, random.Random(1))
    walls = sum(not v for v in maze.values())
    opened = adjust_maze_wall_percentage(maze, 0.0, random.Random(2))
    assert all(opened.values())
    same = adjust_maze_wall_percentage(maze, 1.0, random.Random(2))
    assert sum(not v for v in same.values()) == walls


def test_bfs_path_diagonal_and_blocked() -> None:
    obstacles = [
        [0, WALL, 0],
        [WALL, WALL, 0],
        [0, 0, 0],
    ]
    maze = open_cells(obstacles)
    assert bfs_path(maze, (0, 0), (2, 2)) == []
    assert bfs_path(maze, (2, 0), (0, 2)) == [(2, 0), (2, 1), (1, 2), (0, 2)]
    assert bfs_path(maze, (2, 0), (2, 0)) == [(2, 0)]


def test_reachable_with_blocked_cells() -> None:
    maze = open_cells([[0, 0, 0]])
    assert reachable(maze, (0, 0), [(2, 0)])
    assert not reachable(maze, (0, 0), [(2, 0)], blocked={(1, 0)})
    assert reachable(maze, (0, 0), [(1, 0)], blocked={(1, 0)})


def test_maze_to_obstacles_round_trip() -> None:
    maze = generate_perfect_maze(5, 5, random.Random(3))
    assert open_cells(maze_to_obstacles(maze, 5, 5)) == maze
