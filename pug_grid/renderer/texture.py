"""PIL renderer for committed states.

Each tile is filled with its terrain colour (walls override terrain) and each
entity is drawn on top, either from a texture file looked up by kind or as a
flat coloured disc. Textures are optional; a missing or unreadable file falls
back to the disc so a bare install renders without assets.
"""

import os
from functools import lru_cache
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from pug_grid.entity import Entity
from pug_grid.state import State
from pug_grid.types import WALL, EntityKind

Color = Tuple[int, int, int, int]

DEFAULT_RESOLUTION = 640
DEFAULT_ASSET_ROOT = "assets"

TERRAIN_COLORS: Dict[int, Color] = {
    1: (98, 160, 72, 255),
    6: (122, 184, 88, 255),
    12: (150, 204, 110, 255),
}
DEFAULT_TERRAIN_COLOR: Color = (128, 128, 128, 255)
WALL_COLOR: Color = (84, 62, 46, 255)

ENTITY_COLORS: Dict[EntityKind, Color] = {
    EntityKind.PLAYER: (222, 184, 135, 255),
    EntityKind.SEEKER: (92, 52, 30, 255),
    EntityKind.FLEER: (150, 40, 40, 255),
    EntityKind.EXTERNAL: (70, 90, 200, 255),
}

TextureMap = Dict[EntityKind, str]


@lru_cache(maxsize=256)
def load_texture(path: str, size: int) -> Optional[Image.Image]:
    if not os.path.isfile(path):
        return None
    try:
        with Image.open(path) as img:
            return img.convert("RGBA").resize((size, size))
    except OSError:
        return None


def draw_entity(
    img: Image.Image,
    entity: Entity,
    cell_size: int,
    texture: Optional[Image.Image] = None,
) -> None:
    x0, y0 = entity.position.x * cell_size, entity.position.y * cell_size
    if texture is not None:
        img.alpha_composite(texture, (x0, y0))
        return
    margin = max(1, cell_size // 8)
    ImageDraw.Draw(img).ellipse(
        (x0 + margin, y0 + margin, x0 + cell_size - margin, y0 + cell_size - margin),
        fill=ENTITY_COLORS.get(entity.kind, DEFAULT_TERRAIN_COLOR),
    )


def render(
    state: State,
    resolution: int = DEFAULT_RESOLUTION,
    texture_map: Optional[TextureMap] = None,
    asset_root: str = DEFAULT_ASSET_ROOT,
) -> Image.Image:
    """
    Renders a committed state as an RGBA image, ``resolution`` pixels wide.
    """
    cell_size = max(1, resolution // state.width)
    tiles = np.zeros((state.height, state.width, 4), dtype=np.uint8)
    for y in range(state.height):
        for x in range(state.width):
            if state.obstacles[y][x] == WALL:
                tiles[y, x] = WALL_COLOR
            else:
                tiles[y, x] = TERRAIN_COLORS.get(
                    state.terrain[y][x], DEFAULT_TERRAIN_COLOR
                )
    pixels = tiles.repeat(cell_size, axis=0).repeat(cell_size, axis=1)
    img = Image.fromarray(pixels)

    textures = texture_map or {}
    for entity in sorted(state.entity.values(), key=lambda e: e.id):
        texture = None
        if entity.kind in textures:
            texture = load_texture(
                os.path.join(asset_root, textures[entity.kind]), cell_size
            )
        draw_entity(img, entity, cell_size, texture)
    return img


def render_array(state: State, resolution: int = DEFAULT_RESOLUTION) -> np.ndarray:
    """Render to an ``(H, W, 4)`` uint8 array."""
    return np.asarray(render(state, resolution=resolution), dtype=np.uint8)


class TextureRenderer:
    resolution: int
    texture_map: TextureMap
    asset_root: str

    def __init__(
        self,
        resolution: int = DEFAULT_RESOLUTION,
        texture_map: Optional[TextureMap] = None,
        asset_root: str = DEFAULT_ASSET_ROOT,
    ):
        self.resolution = resolution
        self.texture_map = texture_map or {}
        self.asset_root = asset_root

    def render(self, state: State) -> Image.Image:
        return render(
            state,
            resolution=self.resolution,
            texture_map=self.texture_map,
            asset_root=self.asset_root,
        )
