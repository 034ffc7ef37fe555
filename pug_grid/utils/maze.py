import random
from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from pug_grid.types import ALL_OFFSETS, ORTHOGONAL_OFFSETS, WALL, Offset

Coord = Tuple[int, int]
MazeGrid = Dict[Coord, bool]  # True = open/floor; False = wall


def generate_perfect_maze(
    width: int, height: int, rng: random.Random, open_edge: bool = True
) -> MazeGrid:
    """Carve a perfect maze with an iterative randomized depth-first search.

    Returns a dict mapping ``(x, y)`` to ``True`` for floor and ``False`` for
    wall. Cells are carved on even coordinates; with ``open_edge`` the last
    row/column is opened next to open cells so odd sizes have no dead border.
    """
    maze: MazeGrid = {(x, y): False for x in range(width) for y in range(height)}
    maze[(0, 0)] = True
    stack: List[Coord] = [(0, 0)]
    while stack:
        x, y = stack[-1]
        options = [
            (dx, dy)
            for dx, dy in ORTHOGONAL_OFFSETS
            if 0 <= x + 2 * dx < width
            and 0 <= y + 2 * dy < height
            and not maze[(x + 2 * dx, y + 2 * dy)]
        ]
        if not options:
            stack.pop()
            continue
        dx, dy = rng.choice(options)
        maze[(x + dx, y + dy)] = True
        maze[(x + 2 * dx, y + 2 * dy)] = True
        stack.append((x + 2 * dx, y + 2 * dy))

    if open_edge:
        for y in range(height):
            if maze.get((width - 2, y), False):
                maze[(width - 1, y)] = True
        for x in range(width):
            if maze.get((x, height - 2), False):
                maze[(x, height - 1)] = True
    return maze


def adjust_maze_wall_percentage(
    maze: MazeGrid, wall_percentage: float, rng: random.Random
) -> MazeGrid:
    """Keep only ``wall_percentage`` of the maze walls (0.0 = open field)."""
    walls = sorted(pos for pos, is_open in maze.items() if not is_open)
    rng.shuffle(walls)
    keep = set(walls[: int(len(walls) * wall_percentage)])
    return {pos: is_open or pos not in keep for pos, is_open in maze.items()}


def maze_to_obstacles(maze: MazeGrid, width: int, height: int) -> List[List[int]]:
    """Project a maze onto an obstacle layer (``WALL`` where closed)."""
    return [
        [0 if maze.get((x, y), False) else WALL for x in range(width)]
        for y in range(height)
    ]


def open_cells(obstacles: Sequence[Sequence[int]]) -> MazeGrid:
    """Inverse of :func:`maze_to_obstacles`."""
    return {
        (x, y): value != WALL
        for y, row in enumerate(obstacles)
        for x, value in enumerate(row)
    }


def bfs_path(
    maze: MazeGrid,
    start: Coord,
    goal: Coord,
    directions: Sequence[Offset] = ALL_OFFSETS,
) -> List[Coord]:
    """Shortest path over open cells, ``[]`` if ``goal`` is unreachable.

    The path includes both ``start`` and ``goal``. Movement is 8-way by
    default, matching how entities move.
    """
    if start == goal:
        return [start]
    queue: deque[Coord] = deque([start])
    prev: Dict[Coord, Coord] = {}
    visited: Set[Coord] = {start}
    while queue and goal not in visited:
        x, y = queue.popleft()
        for dx, dy in directions:
            nxt = (x + dx, y + dy)
            if maze.get(nxt, False) and nxt not in visited:
                prev[nxt] = (x, y)
                visited.add(nxt)
                queue.append(nxt)
    if goal not in visited:
        return []
    path = [goal]
    while path[-1] != start:
        path.append(prev[path[-1]])
    path.reverse()
    return path


def reachable(
    maze: MazeGrid,
    start: Coord,
    goals: Iterable[Coord],
    directions: Sequence[Offset] = ALL_OFFSETS,
    blocked: Optional[Set[Coord]] = None,
) -> bool:
    """Return True if every goal can be reached from ``start``.

    Cells in ``blocked`` are treated as walls except when they are a goal.
    """
    goal_set = set(goals)
    grid = dict(maze)
    for cell in blocked or ():
        if cell not in goal_set and cell != start:
            grid[cell] = False
    return all(bfs_path(grid, start, goal, directions) for goal in goal_set)
