from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional

from ..data.assets import ICON_ASSET_IDS
from ..data.palettes import DEFAULT_PALETTE_ID
from .modes import (
    AutoBlend,
    BackgroundMode,
    BlendMode,
    BlendSelection,
    LayoutVariant,
    MovementMode,
    SpriteMode,
)

MAX_DENSITY_PERCENT = 1000.0
MIN_DENSITY_PERCENT = 50.0
MAX_ROTATION_DEGREES = 180.0

# (lo, hi) for every numeric field
DOMAINS: dict[str, tuple[float, float]] = {
    "palette_variance": (0.0, 100.0),
    "scale_percent": (0.0, MAX_DENSITY_PERCENT),
    "scale_base": (0.0, 100.0),
    "scale_spread": (0.0, 100.0),
    "motion_intensity": (0.0, 100.0),
    "motion_speed": (0.0, 100.0),
    "layer_opacity": (15.0, 100.0),
    "rotation_amount": (0.0, MAX_ROTATION_DEGREES),
    "rotation_speed": (0.0, 100.0),
}


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or None when it is not numeric at all."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def coerce_flag(value: Any) -> Optional[bool]:
    """Bools pass through; 0/1 and the usual on/off strings are parsed; anything else is None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def clamp_field(name: str, value: float) -> float:
    lo, hi = DOMAINS[name]
    if math.isnan(value):
        return lo
    return min(hi, max(lo, value))


@dataclass(frozen=True)
class ParameterState:
    seed: str = "DEADBEEF"
    palette_id: str = DEFAULT_PALETTE_ID
    palette_variance: float = 50.0
    scale_percent: float = 50.0
    scale_base: float = 60.0
    scale_spread: float = 55.0
    motion_intensity: float = 48.0
    motion_speed: float = 100.0
    blend: BlendSelection = field(default_factory=AutoBlend)
    layer_opacity: float = 68.0
    sprite_mode: SpriteMode = SpriteMode.ROUNDED
    icon_asset_id: str = ICON_ASSET_IDS[0]
    movement_mode: MovementMode = MovementMode.SWAY
    background_mode: BackgroundMode = BackgroundMode.PALETTE
    rotation_enabled: bool = False
    rotation_amount: float = 0.0
    rotation_speed: float = 0.0
    layout_variant: LayoutVariant = LayoutVariant.UNIFORM

    def with_changes(self, **changes: Any) -> "ParameterState":
        """Copy with ``changes`` merged; numeric fields are clamped to their domains."""
        for name in list(changes):
            if name in DOMAINS:
                changes[name] = clamp_field(name, float(changes[name]))
        return replace(self, **changes)

    @property
    def blend_mode(self) -> BlendMode:
        return self.blend.mode

    @property
    def blend_mode_auto(self) -> bool:
        return self.blend.auto

    def snapshot(self) -> dict[str, Any]:
        """Flat, JSON-friendly record of every field."""
        out: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "blend":
                continue
            value = getattr(self, f.name)
            out[f.name] = value.value if isinstance(value, Enum) else value
        out["blend_mode"] = self.blend.mode.value
        out["blend_mode_auto"] = self.blend.auto
        out["previous_blend_mode"] = self.blend.remembered.value
        return out


DEFAULT_STATE = ParameterState()
