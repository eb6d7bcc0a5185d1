"""Tests for motion trajectories and the animation clock."""

import math

import pytest

from spritefield.core.modes import MovementMode
from spritefield.core.motion import IDEAL_FRAME_MS, SCALE_FLOOR, TRAJECTORIES, AnimationClock, offset


def test_every_mode_has_a_trajectory():
    assert set(TRAJECTORIES) == set(MovementMode)


@pytest.mark.parametrize("mode", list(MovementMode))
def test_scale_multiplier_never_below_floor(mode):
    for step in range(0, 400, 7):
        for layer in range(3):
            res = offset(mode, step * 0.37, step % 11, 1.5, layer, 40.0, 120.0, 1.0)
            assert res.scale_multiplier >= SCALE_FLOOR
            assert math.isfinite(res.offset_x) and math.isfinite(res.offset_y)


@pytest.mark.parametrize("mode", list(MovementMode))
def test_zero_speed_freezes_motion(mode):
    a = offset(mode, 0.0, 3.0, 0.8, 1, 20.0, 60.0, 0.0)
    b = offset(mode, 5000.0, 3.0, 0.8, 1, 20.0, 60.0, 0.0)
    assert a == b


def test_negative_speed_treated_as_zero():
    assert offset(MovementMode.ORBIT, 100.0, 1.0, 1.0, 0, 10.0, 30.0, -2.0) == offset(
        MovementMode.ORBIT, 0.0, 1.0, 1.0, 0, 10.0, 30.0, 0.0
    )


def test_zero_intensity_sway_is_still():
    res = offset(MovementMode.SWAY, 123.0, 4.0, 0.0, 2, 50.0, 80.0, 1.0)
    assert res.offset_x == pytest.approx(0.0)
    assert res.offset_y == pytest.approx(0.0)
    assert res.scale_multiplier == 1.0


def test_orbit_radius_matches_layer_size():
    res = offset(MovementMode.ORBIT, 10.0, 0.0, 1.0, 0, 10.0, 100.0, 1.0)
    assert math.hypot(res.offset_x, res.offset_y) == pytest.approx(12.0)


def test_pulse_scale_extremes():
    # sin(phased * 0.08) hits +1 at phased = pi / 0.16
    res = offset(MovementMode.PULSE, math.pi / 0.16, 0.0, 1.0, 0, 10.0, 30.0, 1.0)
    assert res.scale_multiplier == pytest.approx(1.55)


def test_clock_is_frame_rate_independent():
    fast = AnimationClock()
    for _ in range(60):
        fast.advance(IDEAL_FRAME_MS, 1.0)
    slow = AnimationClock()
    for _ in range(30):
        slow.advance(IDEAL_FRAME_MS * 2, 1.0)
    assert fast.time == pytest.approx(60.0)
    assert slow.time == pytest.approx(fast.time)
    assert (fast.frames, slow.frames) == (60, 30)


def test_clock_speed_and_reset():
    clock = AnimationClock()
    clock.advance(IDEAL_FRAME_MS, 0.5)
    clock.advance(-100, 1.0)
    clock.advance(IDEAL_FRAME_MS, -1.0)
    assert clock.time == pytest.approx(0.5)
    clock.reset()
    assert clock.time == 0.0 and clock.frames == 0
