"""Frame renderer: PreparedComposition + ParameterState -> PIL image.

The background is filled first, then every layer draws its tiles in order.
Each tile is rasterized into a small 'L' coverage mask around its bounding
box and blended onto a float canvas with its blend mode, using the layer
opacity as alpha.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

import numpy as np
from PIL import Image, ImageDraw

from ..data.assets import resolve_icon_asset_id
from ..logging_utils import is_perf_logging_enabled
from ..utils.atlas import atlas_tile, build_shape_atlas
from ..utils.image_ops import blend_into
from ..utils.icons import AssetCache
from .colors import clamp, hex_to_rgb
from .layout import AnyTile, IconTile, PreparedComposition, ShapeTile
from .modes import ShapeKind
from .motion import IDEAL_FRAME_MS, AnimationClock, offset
from .state import ParameterState

log = logging.getLogger(__name__)

# phase spacing between consecutive tiles of a layer
ICON_PHASE_STEP = 9
SHAPE_PHASE_STEP = 7
LAYER_SIZE_STEP = 0.08
MAX_MOTION_SCALE = 1.5
CORNER_SEGMENTS = 6


@dataclass(frozen=True)
class RenderConfig:
    width: int = 640
    height: int = 640
    ideal_frame_ms: float = IDEAL_FRAME_MS
    fps_interval: int = 24
    # leave uncovered pixels transparent (RGBA output) instead of painting the background
    transparent_background: bool = False


@dataclass(frozen=True)
class TilePlacement:
    x: float
    y: float
    size: float
    angle: float


def _rotate(points, angle: float, cx: float, cy: float):
    if angle == 0:
        return [(cx + x, cy + y) for x, y in points]
    c = math.cos(angle)
    s = math.sin(angle)
    return [(cx + x * c - y * s, cy + x * s + y * c) for x, y in points]


def _rounded_square(size: float):
    half = size / 2
    r = size * 0.3
    pts = []
    # corner centres clockwise from top-right, y down
    corners = ((half - r, -half + r, -90.0), (half - r, half - r, 0.0), (-half + r, half - r, 90.0), (-half + r, -half + r, 180.0))
    for cx, cy, start in corners:
        for k in range(CORNER_SEGMENTS + 1):
            a = math.radians(start + 90.0 * k / CORNER_SEGMENTS)
            pts.append((cx + math.cos(a) * r, cy + math.sin(a) * r))
    return pts


def _regular(count: int, radius: float, inner: Optional[float] = None):
    pts = []
    for k in range(count):
        a = 2 * math.pi * (k / count) - math.pi / 2
        rad = radius if inner is None or k % 2 == 0 else inner
        pts.append((math.cos(a) * rad, math.sin(a) * rad))
    return pts


def _rect(w: float, h: float):
    return [(-w / 2, -h / 2), (w / 2, -h / 2), (w / 2, h / 2), (-w / 2, h / 2)]


def shape_outline(shape: ShapeKind, size: float):
    """Closed-form vertices around the origin; None for round shapes."""
    half = size / 2
    if shape is ShapeKind.ROUNDED:
        return _rounded_square(size)
    if shape is ShapeKind.SQUARE:
        return _rect(size, size)
    if shape is ShapeKind.TRIANGLE:
        height = math.sqrt(3) / 2 * size
        y_off = height / 3
        return [(-half, y_off), (half, y_off), (0.0, y_off - height)]
    if shape is ShapeKind.HEXAGON:
        return _regular(6, half)
    if shape is ShapeKind.DIAMOND:
        return [(0.0, -half), (half, 0.0), (0.0, half), (-half, 0.0)]
    if shape is ShapeKind.STAR:
        return _regular(10, half, half * 0.45)
    if shape is ShapeKind.LINE:
        return _rect(size * 18, max(2.0, size * 0.12))
    return None


def _clip_box(x0: float, y0: float, x1: float, y1: float, width: int, height: int):
    bx0 = max(0, int(math.floor(x0)))
    by0 = max(0, int(math.floor(y0)))
    bx1 = min(width, int(math.ceil(x1)) + 1)
    by1 = min(height, int(math.ceil(y1)) + 1)
    if bx1 <= bx0 or by1 <= by0:
        return None
    return bx0, by0, bx1, by1


def rasterize_shape(shape: ShapeKind, place: TilePlacement, width: int, height: int):
    """Return (box, mask) for a vector shape, or None when fully off-canvas."""
    size = max(place.size, 1.0)
    if shape in (ShapeKind.CIRCLE, ShapeKind.RING):
        stroke = max(1.5, size * 0.18) if shape is ShapeKind.RING else 0.0
        r = size / 2 + stroke / 2
        box = _clip_box(place.x - r, place.y - r, place.x + r, place.y + r, width, height)
        if box is None:
            return None
        mask = Image.new("L", (box[2] - box[0], box[3] - box[1]), 0)
        ellipse = (place.x - r - box[0], place.y - r - box[1], place.x + r - box[0], place.y + r - box[1])
        draw = ImageDraw.Draw(mask)
        if stroke:
            draw.ellipse(ellipse, outline=255, width=max(1, int(round(stroke))))
        else:
            draw.ellipse(ellipse, fill=255)
        return box, mask

    pts = _rotate(shape_outline(shape, size), place.angle, place.x, place.y)
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    box = _clip_box(min(xs), min(ys), max(xs), max(ys), width, height)
    if box is None:
        return None
    mask = Image.new("L", (box[2] - box[0], box[3] - box[1]), 0)
    ImageDraw.Draw(mask).polygon([(x - box[0], y - box[1]) for x, y in pts], fill=255)
    return box, mask


def place_bitmap(bitmap: Image.Image, place: TilePlacement, width: int, height: int):
    """Scale a small 'L' bitmap with nearest-neighbour, rotate it and clip to the canvas."""
    side = max(1, int(round(place.size)))
    img = bitmap.resize((side, side), Image.NEAREST)
    if place.angle:
        # PIL rotates counter-clockwise; canvas angles are clockwise (y down)
        img = img.rotate(-math.degrees(place.angle), resample=Image.NEAREST, expand=True)
    w, h = img.size
    left = int(round(place.x - w / 2))
    top = int(round(place.y - h / 2))
    box = _clip_box(left, top, left + w - 1, top + h - 1, width, height)
    if box is None:
        return None
    crop = img.crop((box[0] - left, box[1] - top, box[2] - left, box[3] - top))
    return box, crop


class RenderPipeline:
    def __init__(
        self,
        config: RenderConfig = RenderConfig(),
        assets: Optional[AssetCache] = None,
        on_frame_rate: Optional[Callable[[int], None]] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.config = config
        self.assets = assets
        self.on_frame_rate = on_frame_rate
        self._clock = clock
        self.animation = AnimationClock(config.ideal_frame_ms)
        self.surface: Optional[Image.Image] = None
        self.closed = False
        self._last_tick: Optional[float] = None
        self._fps_mark: Optional[float] = None
        self._fps_frames = 0
        self._missing_icons: set[str] = set()
        self._shape_atlas = build_shape_atlas()
        self._bitmaps: dict[ShapeKind, Image.Image] = {}

    def resize(self, width: int, height: int) -> None:
        width = max(1, int(width))
        height = max(1, int(height))
        self.config = replace(self.config, width=width, height=height)
        log.debug("Render surface resized to %dx%d", width, height)

    def reset_clock(self) -> None:
        self.animation.reset()
        self._last_tick = None
        self._fps_mark = None

    def close(self) -> None:
        self.closed = True
        self.surface = None
        self.on_frame_rate = None

    def tick(
        self,
        composition: PreparedComposition,
        state: ParameterState,
        delta_ms: Optional[float] = None,
    ) -> Optional[Image.Image]:
        """Advance the animation clock by one frame and draw it."""
        if self.closed:
            return None
        now = self._clock()
        if delta_ms is None:
            delta_ms = self.config.ideal_frame_ms if self._last_tick is None else (now - self._last_tick) * 1000.0
        self._last_tick = now
        speed_factor = max(state.motion_speed / 100.0, 0.0)
        t = self.animation.advance(delta_ms, speed_factor)
        self.surface = self.render_at(composition, state, t)
        if is_perf_logging_enabled():
            elapsed_ms = (self._clock() - now) * 1000.0
            log.debug("frame %d drawn in %.2f ms (delta %.2f ms)", self.animation.frames, elapsed_ms, delta_ms)
        self._report_frame_rate(now)
        return self.surface

    def _report_frame_rate(self, now: float) -> None:
        interval = self.config.fps_interval
        if self._fps_mark is None:
            self._fps_mark = now
            self._fps_frames = 0
            return
        self._fps_frames += 1
        if interval <= 0 or self.animation.frames % interval:
            return
        elapsed = now - self._fps_mark
        frames = self._fps_frames
        self._fps_mark = now
        self._fps_frames = 0
        if elapsed <= 0 or self.on_frame_rate is None:
            return
        fps = int(math.floor(frames / elapsed + 0.5))
        try:
            self.on_frame_rate(fps)
        except Exception:
            log.exception("Frame-rate observer failed")

    def render_at(self, composition: PreparedComposition, state: ParameterState, time_value: float) -> Image.Image:
        """Draw ``composition`` at animation time ``time_value`` without touching the clock."""
        cfg = self.config
        width, height = cfg.width, cfg.height
        canvas = np.empty((height, width, 3), dtype=np.float32)
        canvas[...] = np.asarray(hex_to_rgb(composition.background), dtype=np.float32)
        coverage = np.zeros((height, width), dtype=np.float32) if cfg.transparent_background else None

        draw_size = min(width, height)
        offset_x = (width - draw_size) / 2
        offset_y = (height - draw_size) / 2
        motion_scale = clamp(state.motion_intensity / 100.0, 0.0, MAX_MOTION_SCALE)
        speed_factor = max(state.motion_speed / 100.0, 0.0)
        rotation_time = time_value * speed_factor
        fallback_icon = resolve_icon_asset_id(state.icon_asset_id)

        for layer_index, layer in enumerate(composition.layers):
            base_layer_size = draw_size * layer.base_size_ratio
            for tile_index, tile in enumerate(layer.tiles):
                is_icon = isinstance(tile, IconTile)
                base_size = base_layer_size * tile.scale * (1 + layer_index * LAYER_SIZE_STEP)
                move = offset(
                    state.movement_mode,
                    time_value,
                    tile_index * (ICON_PHASE_STEP if is_icon else SHAPE_PHASE_STEP),
                    motion_scale,
                    layer_index,
                    base_size,
                    base_layer_size,
                    speed_factor,
                )
                angle = 0.0
                if state.rotation_enabled:
                    angle = tile.rotation_base + tile.rotation_speed * tile.rotation_direction * rotation_time
                place = TilePlacement(
                    x=offset_x + (tile.u % 1.0) * draw_size + move.offset_x,
                    y=offset_y + (tile.v % 1.0) * draw_size + move.offset_y,
                    size=base_size * move.scale_multiplier,
                    angle=angle,
                )
                drawn = self._rasterize(tile, place, fallback_icon)
                if drawn is None:
                    continue
                box, mask = drawn
                alpha = np.asarray(mask, dtype=np.float32) * (layer.opacity / 255.0)
                color = np.asarray(hex_to_rgb(tile.tint), dtype=np.float32)
                blend_into(canvas, box, alpha, color, tile.blend_mode)
                if coverage is not None:
                    x0, y0, x1, y1 = box
                    region = coverage[y0:y1, x0:x1]
                    region[...] = alpha + region * (1.0 - alpha)

        rgb = np.clip(canvas + 0.5, 0, 255).astype(np.uint8)
        if coverage is None:
            return Image.fromarray(rgb, "RGB")
        a = np.clip(coverage * 255.0 + 0.5, 0, 255).astype(np.uint8)
        return Image.fromarray(np.dstack([rgb, a]), "RGBA")

    def _rasterize(self, tile: AnyTile, place: TilePlacement, fallback_icon: str):
        width, height = self.config.width, self.config.height
        if isinstance(tile, IconTile):
            bitmap = self._icon_bitmap(tile.icon_id, fallback_icon)
            if bitmap is None:
                return None
            return place_bitmap(bitmap, place, width, height)
        if isinstance(tile, ShapeTile) and tile.pixelated:
            return place_bitmap(self._shape_bitmap(tile.shape), place, width, height)
        return rasterize_shape(tile.shape, place, width, height)

    def _shape_bitmap(self, shape: ShapeKind) -> Image.Image:
        bitmap = self._bitmaps.get(shape)
        if bitmap is None:
            atlas, tiles_x, _, index = self._shape_atlas
            bitmap = atlas_tile(atlas, index[shape], tiles_x)
            self._bitmaps[shape] = bitmap
        return bitmap

    def _icon_bitmap(self, icon_id: str, fallback_id: str) -> Optional[Image.Image]:
        if self.assets is None:
            return None
        for asset_id in (icon_id, fallback_id):
            bitmap = self.assets.get(asset_id)
            if bitmap is not None:
                return bitmap
            self.assets.request(asset_id)
        if icon_id not in self._missing_icons:
            self._missing_icons.add(icon_id)
            log.info("Icon %r not loaded yet, skipping its tiles", icon_id)
        return None
