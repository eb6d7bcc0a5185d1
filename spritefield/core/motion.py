from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, NamedTuple

from .modes import MovementMode

SCALE_FLOOR = 0.35
IDEAL_FRAME_MS = 1000.0 / 60.0


class MotionOffset(NamedTuple):
    offset_x: float
    offset_y: float
    scale_multiplier: float


@dataclass
class MotionInput:
    phased: float
    phase: float
    motion_scale: float
    layer_index: int
    base_unit: float
    layer_tile_size: float


def _floor(value: float) -> float:
    return max(SCALE_FLOOR, value)


def _sway(m: MotionInput) -> MotionOffset:
    x = math.sin(m.phased * 0.13) * m.base_unit * m.motion_scale * 0.45
    y = math.sin((m.phased + m.phase * 0.5) * 0.07 + m.layer_index * 0.4) * m.base_unit * m.motion_scale * 0.6
    return MotionOffset(x, y, 1.0)


def _pulse(m: MotionInput) -> MotionOffset:
    layer_factor = 1 + m.layer_index * 0.12
    pulse = math.sin(m.phased * 0.08) * m.motion_scale
    y = math.sin(m.phased * 0.04) * m.base_unit * m.motion_scale * 0.25 * layer_factor
    return MotionOffset(0.0, y, _floor(1 + pulse * 0.55))


def _orbit(m: MotionInput) -> MotionOffset:
    layer_factor = 1 + m.layer_index * 0.12
    radius = m.layer_tile_size * 0.12 * m.motion_scale * layer_factor
    angle = m.phased * (0.05 + m.layer_index * 0.01)
    return MotionOffset(math.cos(angle) * radius, math.sin(angle) * radius, 1.0)


def _drift(m: MotionInput) -> MotionOffset:
    x = math.cos(m.phased * 0.02 + m.phase * 0.45) * m.layer_tile_size * 0.08 * m.motion_scale
    y = math.sin(m.phased * 0.018 + m.phase * 0.3) * m.layer_tile_size * 0.06 * m.motion_scale
    return MotionOffset(x, y, _floor(1 + math.sin(m.phase) * m.motion_scale * 0.15))


def _ripple(m: MotionInput) -> MotionOffset:
    wave = math.sin(m.phased * 0.04 + m.layer_index * 0.6)
    radius = m.base_unit * (0.6 + m.motion_scale * 0.9)
    x = math.cos(m.phase * 1.2 + m.phased * 0.015) * radius * wave * 0.35
    y = math.sin(m.phase * 1.35 + m.phased * 0.02) * radius * wave * 0.35
    return MotionOffset(x, y, _floor(1 + wave * m.motion_scale * 0.4))


def _zigzag(m: MotionInput) -> MotionOffset:
    zig = m.phased * 0.06 + m.layer_index * 0.25
    # triangle wave in [-1, 1]
    tri = (2 / math.pi) * math.asin(math.sin(zig))
    sweep = math.sin(zig * 1.35)
    x = tri * m.layer_tile_size * 0.35 * m.motion_scale + sweep * m.base_unit * 0.2 * m.motion_scale
    y = math.sin(zig * 0.9 + m.layer_index * 0.4 + m.phase * 0.4) * m.layer_tile_size * 0.22 * m.motion_scale
    return MotionOffset(x, y, _floor(1 + math.cos(zig * 1.1) * 0.18 * m.motion_scale))


def _cascade(m: MotionInput) -> MotionOffset:
    t = m.phased * 0.045 + m.layer_index * 0.2
    wave = math.sin(t)
    fall = (1 - math.cos(t)) * 0.5
    y = (fall * 2 - 1) * m.layer_tile_size * 0.4 * (1 + m.layer_index * 0.12) * m.motion_scale
    x = wave * m.base_unit * 0.3 * m.motion_scale
    return MotionOffset(x, y, _floor(1 + math.sin(t * 1.2 + m.phase * 0.25) * 0.16 * m.motion_scale))


def _spiral(m: MotionInput) -> MotionOffset:
    radius = m.base_unit * (0.8 + m.layer_index * 0.25 + m.motion_scale * 1.8)
    angle = m.phased * (0.04 + m.layer_index * 0.02)
    factor = 1 + math.sin(angle * 0.5) * 0.4
    return MotionOffset(
        math.cos(angle) * radius * factor,
        math.sin(angle) * radius * factor,
        _floor(1 + math.cos(angle * 0.7) * m.motion_scale * 0.25),
    )


def _comet(m: MotionInput) -> MotionOffset:
    path = m.layer_tile_size * (1.2 + m.layer_index * 0.35 + m.motion_scale * 1.6)
    travel = m.phased * (0.035 + m.layer_index * 0.01)
    orbital = travel + m.phase
    tail = (math.sin(travel * 0.9 + m.phase * 0.6) + 1) * 0.5
    return MotionOffset(
        math.cos(orbital) * path,
        math.sin(orbital * 0.75) * path * 0.48,
        _floor(0.65 + tail * m.motion_scale * 0.55),
    )


def _wavefront(m: MotionInput) -> MotionOffset:
    travel = m.phased * 0.055
    radius = m.layer_tile_size * (m.motion_scale * 2.4 + 1.6 + m.layer_index * 0.25)
    x = math.cos(travel + m.phase * 0.25) * radius
    y = math.sin(travel * 0.65 + m.layer_index * 0.3 + m.phase * 0.15) * radius * 0.75
    return MotionOffset(x, y, _floor(1 + math.sin(travel * 0.5) * m.motion_scale * 0.35))


TRAJECTORIES: dict[MovementMode, Callable[[MotionInput], MotionOffset]] = {
    MovementMode.SWAY: _sway,
    MovementMode.PULSE: _pulse,
    MovementMode.ORBIT: _orbit,
    MovementMode.DRIFT: _drift,
    MovementMode.RIPPLE: _ripple,
    MovementMode.ZIGZAG: _zigzag,
    MovementMode.CASCADE: _cascade,
    MovementMode.SPIRAL: _spiral,
    MovementMode.COMET: _comet,
    MovementMode.WAVEFRONT: _wavefront,
}

missing = set(MovementMode) - set(TRAJECTORIES)
if missing:
    raise RuntimeError(f"movement modes without a trajectory: {sorted(m.value for m in missing)}")
del missing


def offset(
    mode: MovementMode,
    time: float,
    phase: float,
    motion_scale: float,
    layer_index: int,
    base_unit: float,
    layer_tile_size: float,
    speed_factor: float,
) -> MotionOffset:
    """Positional offset and scale multiplier for one tile at ``time``."""
    velocity = max(speed_factor, 0.0)
    base_time = 0.0 if velocity == 0 else time * velocity
    m = MotionInput(
        phased=base_time + phase,
        phase=phase,
        motion_scale=motion_scale,
        layer_index=layer_index,
        base_unit=base_unit,
        layer_tile_size=layer_tile_size,
    )
    x, y, scale = TRAJECTORIES[mode](m)
    return MotionOffset(x, y, max(SCALE_FLOOR, scale))


class AnimationClock:
    """Frame-rate independent time accumulator.

    Each rendered frame advances ``time`` by ``speed * delta_ms / IDEAL_FRAME_MS``,
    so a slow host takes fewer, larger steps at the same overall rate.
    """

    def __init__(self, ideal_frame_ms: float = IDEAL_FRAME_MS):
        self.ideal_frame_ms = ideal_frame_ms
        self.time = 0.0
        self.frames = 0

    def advance(self, delta_ms: float, speed_factor: float) -> float:
        delta_ms = max(0.0, float(delta_ms))
        self.time += max(0.0, speed_factor) * (delta_ms / self.ideal_frame_ms)
        self.frames += 1
        return self.time

    def reset(self) -> None:
        self.time = 0.0
        self.frames = 0
