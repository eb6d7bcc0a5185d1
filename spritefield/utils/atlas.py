import numpy as np
from PIL import Image

from ..core.modes import ShapeKind

# 8x8 pixel-art outlines used by the pixel-cluster layout; "1" is ink
SHAPE_BITMAPS = {
    ShapeKind.ROUNDED: (
        "00011100",
        "00111110",
        "01111111",
        "01111111",
        "01111111",
        "01111111",
        "00111110",
        "00011100",
    ),
    ShapeKind.CIRCLE: (
        "00011000",
        "00111100",
        "01111110",
        "11111111",
        "11111111",
        "01111110",
        "00111100",
        "00011000",
    ),
    ShapeKind.SQUARE: (
        "01111110",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
        "01111110",
    ),
    ShapeKind.TRIANGLE: (
        "00001000",
        "00011000",
        "00111100",
        "01111110",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
    ),
    ShapeKind.HEXAGON: (
        "00011000",
        "00111100",
        "01111110",
        "11111111",
        "11111111",
        "01111110",
        "00111100",
        "00011000",
    ),
    ShapeKind.RING: (
        "00111100",
        "01100110",
        "11000011",
        "10000001",
        "10000001",
        "11000011",
        "01100110",
        "00111100",
    ),
    ShapeKind.DIAMOND: (
        "00001000",
        "00011100",
        "00111110",
        "01111111",
        "00111110",
        "00011100",
        "00001000",
        "00000000",
    ),
    ShapeKind.STAR: (
        "00001000",
        "01011100",
        "01111110",
        "11111111",
        "01111110",
        "01011100",
        "00001000",
        "00000000",
    ),
    ShapeKind.LINE: (
        "00000000",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
        "11111111",
        "00000000",
        "00000000",
    ),
}

missing = set(ShapeKind) - set(SHAPE_BITMAPS)
if missing:
    raise RuntimeError(f"shapes without a bitmap: {sorted(s.value for s in missing)}")
del missing

CELL = 8


def bitmap_to_mask(rows) -> Image.Image:
    """'0'/'1' rows -> 'L' image with ink at 255."""
    arr = np.array([[255 if ch == "1" else 0 for ch in row] for row in rows], dtype=np.uint8)
    return Image.fromarray(arr, "L")


def build_shape_atlas(kinds=None, cell: int = CELL):
    """Pack the shape bitmaps into one monochrome atlas.

    Returns (atlas_img: PIL.Image 'L', tiles_x: int, tiles_y: int, index: dict[ShapeKind, int]).
    """
    kinds = list(kinds or SHAPE_BITMAPS)
    n = len(kinds)
    # square-ish grid
    tiles_x = int(np.ceil(np.sqrt(n)))
    tiles_y = int(np.ceil(n / tiles_x))
    atlas = Image.new("L", (tiles_x * cell, tiles_y * cell), color=0)
    index = {}
    for idx, kind in enumerate(kinds):
        tx = idx % tiles_x
        ty = idx // tiles_x
        tile = bitmap_to_mask(SHAPE_BITMAPS[kind])
        if tile.size != (cell, cell):
            tile = tile.resize((cell, cell), Image.NEAREST)
        atlas.paste(tile, (tx * cell, ty * cell))
        index[kind] = idx
    return atlas, tiles_x, tiles_y, index


def atlas_tile(atlas: Image.Image, idx: int, tiles_x: int, cell: int = CELL) -> Image.Image:
    x0 = (idx % tiles_x) * cell
    y0 = (idx // tiles_x) * cell
    return atlas.crop((x0, y0, x0 + cell, y0 + cell))
