from .grid import EntityPlacement, Level
from .convert import from_state, to_state
from .generator import default_level, maze_level, random_level

__all__ = [
    "EntityPlacement",
    "Level",
    "default_level",
    "from_state",
    "maze_level",
    "random_level",
    "to_state",
]
