"""Rendering helpers.

``snapshot`` implements the render contract the engine exposes after each
commit; ``texture`` turns a committed state into a PIL image.
"""

from .snapshot import Snapshot, entity_grid, render_ascii, snapshot, state_to_ascii
from .texture import TextureRenderer

__all__ = [
    "Snapshot",
    "TextureRenderer",
    "entity_grid",
    "render_ascii",
    "snapshot",
    "state_to_ascii",
]
