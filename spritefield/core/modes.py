from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type, TypeVar, Union

E = TypeVar("E", bound=Enum)


class MovementMode(str, Enum):
    SWAY = "sway"
    PULSE = "pulse"
    ORBIT = "orbit"
    DRIFT = "drift"
    RIPPLE = "ripple"
    ZIGZAG = "zigzag"
    CASCADE = "cascade"
    SPIRAL = "spiral"
    COMET = "comet"
    WAVEFRONT = "wavefront"


class ShapeKind(str, Enum):
    ROUNDED = "rounded"
    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"
    HEXAGON = "hexagon"
    RING = "ring"
    DIAMOND = "diamond"
    STAR = "star"
    LINE = "line"


class SpriteMode(str, Enum):
    ROUNDED = "rounded"
    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"
    HEXAGON = "hexagon"
    RING = "ring"
    DIAMOND = "diamond"
    STAR = "star"
    LINE = "line"
    ICON = "icon"

    @property
    def shape(self) -> Optional[ShapeKind]:
        if self is SpriteMode.ICON:
            return None
        return ShapeKind(self.value)


class BlendMode(str, Enum):
    NONE = "NONE"
    MULTIPLY = "MULTIPLY"
    SCREEN = "SCREEN"
    HARD_LIGHT = "HARD_LIGHT"
    OVERLAY = "OVERLAY"


class BackgroundMode(str, Enum):
    PALETTE = "palette"
    MIDNIGHT = "midnight"
    CHARCOAL = "charcoal"
    DUSK = "dusk"
    DAWN = "dawn"
    NEBULA = "nebula"


class LayoutVariant(str, Enum):
    UNIFORM = "uniform"
    PIXEL_CLUSTER = "pixel_cluster"


BACKGROUND_PRESETS: dict[BackgroundMode, Optional[str]] = {
    BackgroundMode.PALETTE: None,
    BackgroundMode.MIDNIGHT: "#050509",
    BackgroundMode.CHARCOAL: "#15151f",
    BackgroundMode.DUSK: "#1f1b3b",
    BackgroundMode.DAWN: "#fbe8c8",
    BackgroundMode.NEBULA: "#121835",
}

BLEND_MODE_POOL: tuple[BlendMode, ...] = tuple(BlendMode)
SPRITE_MODE_POOL: tuple[SpriteMode, ...] = tuple(SpriteMode)
SHAPE_POOL: tuple[ShapeKind, ...] = tuple(ShapeKind)
MOVEMENT_POOL: tuple[MovementMode, ...] = tuple(MovementMode)


@dataclass(frozen=True)
class AutoBlend:
    """Blend modes are drawn per tile; ``remembered`` is restored on switching back."""

    remembered: BlendMode = BlendMode.NONE

    @property
    def auto(self) -> bool:
        return True

    @property
    def mode(self) -> BlendMode:
        return self.remembered


@dataclass(frozen=True)
class ManualBlend:
    mode: BlendMode = BlendMode.NONE

    @property
    def auto(self) -> bool:
        return False

    @property
    def remembered(self) -> BlendMode:
        return self.mode


BlendSelection = Union[AutoBlend, ManualBlend]


def parse_enum(enum_cls: Type[E], value: object) -> Optional[E]:
    """Return the member matching ``value`` (member, value or name), else None."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        pass
    try:
        return enum_cls[value.upper()]
    except KeyError:
        return None
