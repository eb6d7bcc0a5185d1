"""Deterministic layout: parameter state + palette -> PreparedComposition.

All randomness comes from streams derived from ``state.seed``:

- general (no suffix): per-layer opacity jitter
- ``-color``: palette jitter, background jitter, tile tints
- ``-position``: grid jitter, scale, rotation
- ``-blend``: layer and per-tile blend modes

Each tile consumes a fixed number of draws from every stream, so settings
that only change *how* a draw is used (rotation on/off, manual vs auto
blend) never move tiles or recolor them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

from ..data.assets import resolve_icon_asset_id
from ..data.palettes import Palette
from .colors import clamp, jitter_color
from .modes import (
    BACKGROUND_PRESETS,
    BLEND_MODE_POOL,
    BlendMode,
    LayoutVariant,
    ShapeKind,
    SpriteMode,
)
from .seeded import derive_stream
from .state import MAX_DENSITY_PERCENT, MAX_ROTATION_DEGREES, ParameterState

MIN_TILE_SCALE = 0.12
MAX_TILE_SCALE = 6.5
ROTATION_SPEED_MAX = (math.pi / 2) * 0.05
SCALE_EPSILON = 1e-6


@dataclass(frozen=True)
class LayoutConfig:
    variant: LayoutVariant
    min_tile_scale: float = MIN_TILE_SCALE
    max_tile_scale: float = MAX_TILE_SCALE
    layer_thresholds: tuple[float, ...] = (0.0, 0.38, 0.7)
    icon_max_tiles: int = 36
    shape_max_tiles: int = 60
    icon_base_size: float = 0.18
    shape_base_size: float = 0.22
    icon_layer_growth: float = 0.12
    shape_layer_growth: float = 0.18
    cell_jitter: float = 0.6
    single_cell_jitter: float = 0.2
    edge_margin: float = 0.05
    opacity_jitter: float = 0.35
    opacity_min: float = 0.12
    opacity_max: float = 0.95
    # 0 disables lattice snapping
    lattice: int = 0
    pixelated_shapes: bool = False


UNIFORM_LAYOUT = LayoutConfig(variant=LayoutVariant.UNIFORM)

PIXEL_CLUSTER_LAYOUT = LayoutConfig(
    variant=LayoutVariant.PIXEL_CLUSTER,
    min_tile_scale=0.25,
    max_tile_scale=4.0,
    icon_max_tiles=24,
    shape_max_tiles=48,
    cell_jitter=0.4,
    lattice=32,
    pixelated_shapes=True,
)

LAYOUTS: dict[LayoutVariant, LayoutConfig] = {
    LayoutVariant.UNIFORM: UNIFORM_LAYOUT,
    LayoutVariant.PIXEL_CLUSTER: PIXEL_CLUSTER_LAYOUT,
}


@dataclass(frozen=True)
class Tile:
    u: float
    v: float
    scale: float
    blend_mode: BlendMode
    tint: str
    rotation_base: float
    rotation_direction: int
    rotation_speed: float


@dataclass(frozen=True)
class ShapeTile(Tile):
    shape: ShapeKind
    pixelated: bool = False

    @property
    def kind(self) -> str:
        return "shape"


@dataclass(frozen=True)
class IconTile(Tile):
    icon_id: str

    @property
    def kind(self) -> str:
        return "icon"


AnyTile = Union[ShapeTile, IconTile]


@dataclass(frozen=True)
class Layer:
    blend_mode: BlendMode
    opacity: float
    base_size_ratio: float
    mode: str
    tiles: tuple[AnyTile, ...]

    @property
    def tile_count(self) -> int:
        return len(self.tiles)


@dataclass(frozen=True)
class PreparedComposition:
    seed: str
    background: str
    layers: tuple[Layer, ...]

    @property
    def tile_total(self) -> int:
        return sum(layer.tile_count for layer in self.layers)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def resolve_scale_range(state: ParameterState, config: LayoutConfig) -> tuple[float, float, float]:
    """Return (base, min, max) tile scale factors."""
    base_value = clamp(state.scale_base / 100.0, 0.0, 1.0)
    spread = clamp(state.scale_spread / 100.0, 0.0, 1.0)
    base = lerp(config.min_tile_scale, config.max_tile_scale, base_value)
    lo = lerp(base, config.min_tile_scale, spread)
    hi = lerp(base, config.max_tile_scale, spread)
    return base, lo, hi


def layer_tile_count(density: float, layer_index: int, is_icon: bool, config: LayoutConfig) -> int:
    """Tile count for one layer, or 0 when the layer is gated off."""
    if layer_index >= len(config.layer_thresholds):
        return 0
    threshold = config.layer_thresholds[layer_index]
    if layer_index > 0 and density < threshold:
        return 0
    if layer_index == 0:
        normalized = density
    else:
        normalized = clamp((density - threshold) / (1.0 - threshold), 0.0, 1.0)
    cap = config.icon_max_tiles if is_icon else config.shape_max_tiles
    minimum = 1 if layer_index == 0 else 0
    return max(minimum, round_half_up(1 + normalized * (cap - 1)))


def grid_positions(count: int, stream, config: LayoutConfig) -> list[tuple[float, float]]:
    cols = max(1, round_half_up(math.sqrt(count)))
    rows = max(1, math.ceil(count / cols))
    jitter_x = config.single_cell_jitter if cols == 1 else config.cell_jitter
    jitter_y = config.single_cell_jitter if rows == 1 else config.cell_jitter
    lo, hi = config.edge_margin, 1.0 - config.edge_margin
    out = []
    for index in range(count):
        col = index % cols
        row = index // cols
        u = (col + 0.5 + (stream() - 0.5) * jitter_x) / cols
        v = (row + 0.5 + (stream() - 0.5) * jitter_y) / rows
        if config.lattice:
            u = round_half_up(u * config.lattice) / config.lattice
            v = round_half_up(v * config.lattice) / config.lattice
        out.append((clamp(u, lo, hi), clamp(v, lo, hi)))
    return out


def compute(
    state: ParameterState,
    palette: Palette,
    config: Optional[LayoutConfig] = None,
) -> PreparedComposition:
    config = config or LAYOUTS[state.layout_variant]
    general = derive_stream(state.seed)
    color_rng = derive_stream(state.seed, "-color")
    position_rng = derive_stream(state.seed, "-position")
    blend_rng = derive_stream(state.seed, "-blend")

    variance = clamp(state.palette_variance / 100.0, 0.0, 1.0)
    working = [jitter_color(c, variance, color_rng) for c in palette.colors]
    # drawn for every background mode so tile tints do not depend on it
    palette_background = jitter_color(palette.colors[0], variance * 0.5, color_rng)
    preset = BACKGROUND_PRESETS[state.background_mode]
    background = preset if preset is not None else palette_background

    density = clamp(state.scale_percent / MAX_DENSITY_PERCENT, 0.0, 1.0)
    base_scale, min_scale, max_scale = resolve_scale_range(state, config)
    scale_range = max(0.0, max_scale - min_scale)
    rotation_range = (
        math.radians(clamp(state.rotation_amount, 0.0, MAX_ROTATION_DEGREES)) if state.rotation_enabled else 0.0
    )
    rotation_speed_base = clamp(state.rotation_speed, 0.0, 100.0) / 100.0

    is_icon = state.sprite_mode is SpriteMode.ICON
    shape = state.sprite_mode.shape or ShapeKind.ROUNDED
    icon_id = resolve_icon_asset_id(state.icon_asset_id)
    opacity_base = clamp(state.layer_opacity / 100.0, config.opacity_min, 1.0)
    manual_blend = None if state.blend.auto else state.blend.mode

    layers: list[Layer] = []
    for layer_index in range(len(config.layer_thresholds)):
        count = layer_tile_count(density, layer_index, is_icon, config)
        if count == 0:
            continue

        auto_layer_blend = blend_rng.choice(BLEND_MODE_POOL)
        layer_blend = manual_blend if manual_blend is not None else auto_layer_blend
        opacity = clamp(
            opacity_base + (general() - 0.5) * config.opacity_jitter,
            config.opacity_min,
            config.opacity_max,
        )
        growth = config.icon_layer_growth if is_icon else config.shape_layer_growth
        base_size = config.icon_base_size if is_icon else config.shape_base_size
        base_size_ratio = base_size * (1 + layer_index * growth)

        tiles: list[AnyTile] = []
        for u, v in grid_positions(count, position_rng, config):
            scale_draw = position_rng()
            rotation_draw = position_rng()
            direction = 1 if position_rng() > 0.5 else -1
            speed_draw = position_rng()
            tile_blend = blend_rng.choice(BLEND_MODE_POOL)
            tint = color_rng.choice(working)

            if scale_range < SCALE_EPSILON:
                scale = base_scale
            else:
                scale = clamp(min_scale + scale_draw * scale_range, config.min_tile_scale, config.max_tile_scale)
            rotation_base = (rotation_draw - 0.5) * 2 * rotation_range if rotation_range > 0 else 0.0
            rotation_speed = (
                rotation_speed_base * ROTATION_SPEED_MAX * (0.6 + speed_draw * 0.6) if rotation_speed_base > 0 else 0.0
            )
            common = dict(
                u=u,
                v=v,
                scale=scale,
                blend_mode=manual_blend if manual_blend is not None else tile_blend,
                tint=tint,
                rotation_base=rotation_base,
                rotation_direction=direction,
                rotation_speed=rotation_speed,
            )
            if is_icon:
                tiles.append(IconTile(icon_id=icon_id, **common))
            else:
                tiles.append(ShapeTile(shape=shape, pixelated=config.pixelated_shapes, **common))

        layers.append(
            Layer(
                blend_mode=layer_blend,
                opacity=opacity,
                base_size_ratio=base_size_ratio,
                mode="icon" if is_icon else "shape",
                tiles=tuple(tiles),
            )
        )

    return PreparedComposition(seed=state.seed, background=background, layers=tuple(layers))
