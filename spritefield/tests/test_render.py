"""Tests for the frame renderer."""

import itertools
import logging

import numpy as np
import pytest
from PIL import Image

from spritefield.core.layout import IconTile, Layer, PreparedComposition, ShapeTile
from spritefield.core.modes import BlendMode, ShapeKind
from spritefield.core.render import RenderConfig, RenderPipeline, TilePlacement, rasterize_shape, shape_outline
from spritefield.core.state import DEFAULT_STATE
from spritefield.data.assets import ICON_ASSETS
from spritefield.logging_utils import LogMode, set_log_mode
from spritefield.utils.icons import AssetCache

STILL = DEFAULT_STATE.with_changes(motion_intensity=0)


def _square_comp(background="#000000", blend=BlendMode.NONE, tint="#ff0000", opacity=1.0, shape=ShapeKind.SQUARE, pixelated=False):
    tile = ShapeTile(
        u=0.5,
        v=0.5,
        scale=1.0,
        blend_mode=blend,
        tint=tint,
        rotation_base=0.0,
        rotation_direction=1,
        rotation_speed=0.0,
        shape=shape,
        pixelated=pixelated,
    )
    layer = Layer(blend_mode=blend, opacity=opacity, base_size_ratio=0.5, mode="shape", tiles=(tile,))
    return PreparedComposition(seed="TEST", background=background, layers=(layer,))


def _pixel(img, x, y):
    return tuple(np.asarray(img)[y, x])


def test_empty_composition_is_background():
    pipe = RenderPipeline(RenderConfig(16, 12))
    img = pipe.render_at(PreparedComposition("S", "#102030", ()), STILL, 0.0)
    assert img.mode == "RGB" and img.size == (16, 12)
    assert (np.asarray(img) == (16, 32, 48)).all()


def test_square_tile_is_drawn_at_centre():
    pipe = RenderPipeline(RenderConfig(64, 64))
    img = pipe.render_at(_square_comp(), STILL, 0.0)
    assert _pixel(img, 32, 32) == (255, 0, 0)
    assert _pixel(img, 2, 2) == (0, 0, 0)


def test_layer_opacity_is_alpha():
    pipe = RenderPipeline(RenderConfig(64, 64))
    img = pipe.render_at(_square_comp(tint="#ffffff", opacity=0.5), STILL, 0.0)
    r, g, b = _pixel(img, 32, 32)
    assert r == g == b
    assert 126 <= r <= 129


@pytest.mark.parametrize(
    "blend,background,tint,expected",
    [
        (BlendMode.MULTIPLY, "#ffffff", "#3366cc", (0x33, 0x66, 0xCC)),
        (BlendMode.MULTIPLY, "#000000", "#3366cc", (0, 0, 0)),
        (BlendMode.SCREEN, "#000000", "#3366cc", (0x33, 0x66, 0xCC)),
        (BlendMode.SCREEN, "#ffffff", "#3366cc", (255, 255, 255)),
        (BlendMode.OVERLAY, "#000000", "#ffffff", (0, 0, 0)),
        (BlendMode.HARD_LIGHT, "#000000", "#ffffff", (255, 255, 255)),
    ],
)
def test_blend_modes(blend, background, tint, expected):
    pipe = RenderPipeline(RenderConfig(64, 64))
    img = pipe.render_at(_square_comp(background=background, blend=blend, tint=tint), STILL, 0.0)
    assert _pixel(img, 32, 32) == expected


@pytest.mark.parametrize("shape", list(ShapeKind))
def test_every_shape_covers_its_centre(shape):
    pipe = RenderPipeline(RenderConfig(64, 64))
    img = pipe.render_at(_square_comp(tint="#00ff00", shape=shape), STILL, 0.0)
    if shape is ShapeKind.RING:
        # stroked: hollow centre, ink on the rim
        assert _pixel(img, 32, 32) == (0, 0, 0)
        assert (np.asarray(img)[..., 1] == 255).any()
    else:
        assert _pixel(img, 32, 32) == (0, 255, 0)


@pytest.mark.parametrize("shape", list(ShapeKind))
def test_pixelated_shapes_draw(shape):
    pipe = RenderPipeline(RenderConfig(64, 64))
    img = pipe.render_at(_square_comp(tint="#00ff00", shape=shape, pixelated=True), STILL, 0.0)
    assert (np.asarray(img)[..., 1] == 255).any()


def test_shape_outlines_are_closed_form():
    assert shape_outline(ShapeKind.CIRCLE, 10) is None
    assert len(shape_outline(ShapeKind.HEXAGON, 10)) == 6
    assert len(shape_outline(ShapeKind.STAR, 10)) == 10
    xs = [p[0] for p in shape_outline(ShapeKind.LINE, 10)]
    assert max(xs) - min(xs) == pytest.approx(180)


def test_off_canvas_tiles_are_skipped():
    assert rasterize_shape(ShapeKind.SQUARE, TilePlacement(-100, -100, 10, 0.0), 32, 32) is None
    box, mask = rasterize_shape(ShapeKind.SQUARE, TilePlacement(0, 0, 10, 0.0), 32, 32)
    assert box[0] == 0 and box[1] == 0
    assert mask.size == (box[2] - box[0], box[3] - box[1])


def test_rotation_only_when_enabled():
    tile = ShapeTile(0.5, 0.5, 1.0, BlendMode.NONE, "#ffffff", 0.7, 1, 0.0, ShapeKind.LINE)
    comp = PreparedComposition("S", "#000000", (Layer(BlendMode.NONE, 1.0, 0.2, "shape", (tile,)),))
    pipe = RenderPipeline(RenderConfig(64, 64))
    flat = np.asarray(pipe.render_at(comp, STILL, 0.0))
    tilted = np.asarray(pipe.render_at(comp, STILL.with_changes(rotation_enabled=True), 0.0))
    assert not np.array_equal(flat, tilted)


def test_transparent_background_outputs_alpha():
    pipe = RenderPipeline(RenderConfig(64, 64, transparent_background=True))
    img = pipe.render_at(_square_comp(opacity=0.5), STILL, 0.0)
    assert img.mode == "RGBA"
    arr = np.asarray(img)
    assert arr[2, 2, 3] == 0
    assert 126 <= arr[32, 32, 3] <= 129


def test_icon_tiles_use_loaded_masks(stub_assets):
    tile = IconTile(0.5, 0.5, 1.0, BlendMode.NONE, "#0000ff", 0.0, 1, 0.0, icon_id="pinky")
    comp = PreparedComposition("S", "#000000", (Layer(BlendMode.NONE, 1.0, 0.5, "icon", (tile,)),))
    pipe = RenderPipeline(RenderConfig(64, 64), assets=stub_assets)
    img = pipe.render_at(comp, STILL, 0.0)
    assert _pixel(img, 32, 32) == (0, 0, 255)


def test_missing_icons_skip_tiles():
    def broken(asset):
        raise OSError("unreadable")

    cache = AssetCache(ICON_ASSETS, loader=broken)
    try:
        cache.request_all()
        cache.wait(timeout=5)
        tile = IconTile(0.5, 0.5, 1.0, BlendMode.NONE, "#0000ff", 0.0, 1, 0.0, icon_id="pinky")
        comp = PreparedComposition("S", "#000000", (Layer(BlendMode.NONE, 1.0, 0.5, "icon", (tile,)),))
        pipe = RenderPipeline(RenderConfig(32, 32), assets=cache)
        assert (np.asarray(pipe.render_at(comp, STILL, 0.0)) == 0).all()
        assert (np.asarray(RenderPipeline(RenderConfig(32, 32)).render_at(comp, STILL, 0.0)) == 0).all()
    finally:
        cache.close()


def test_tick_advances_clock_and_reports_fps():
    ticks = itertools.count()
    reported = []
    pipe = RenderPipeline(RenderConfig(16, 16, fps_interval=24), on_frame_rate=reported.append, clock=lambda: next(ticks) * 0.05)
    comp = PreparedComposition("S", "#000000", ())
    for _ in range(48):
        pipe.tick(comp, DEFAULT_STATE)
    assert reported == [20, 20]
    # first frame uses the ideal delta, the rest 50 ms each
    assert pipe.animation.time == pytest.approx(1.0 + 47 * 3.0)


def test_perf_mode_logs_frame_timing(caplog):
    comp = PreparedComposition("S", "#000000", ())
    pipe = RenderPipeline(RenderConfig(8, 8))
    caplog.set_level(logging.DEBUG, logger="spritefield.core.render")
    pipe.tick(comp, DEFAULT_STATE)
    assert not any("drawn in" in r.getMessage() for r in caplog.records)
    set_log_mode(LogMode.PERF)
    try:
        pipe.tick(comp, DEFAULT_STATE)
    finally:
        set_log_mode(LogMode.NORMAL)
    assert any(r.getMessage().startswith("frame 2 drawn in") for r in caplog.records)


def test_tick_with_explicit_delta_and_speed():
    pipe = RenderPipeline(RenderConfig(8, 8))
    comp = PreparedComposition("S", "#000000", ())
    pipe.tick(comp, DEFAULT_STATE.with_changes(motion_speed=50), delta_ms=1000.0 / 60.0)
    assert pipe.animation.time == pytest.approx(0.5)


def test_frame_rate_observer_errors_are_contained():
    ticks = itertools.count()

    def boom(fps):
        raise RuntimeError("display gone")

    pipe = RenderPipeline(RenderConfig(8, 8, fps_interval=2), on_frame_rate=boom, clock=lambda: next(ticks) * 0.1)
    comp = PreparedComposition("S", "#000000", ())
    for _ in range(4):
        assert pipe.tick(comp, DEFAULT_STATE) is not None


def test_close_and_resize():
    pipe = RenderPipeline(RenderConfig(8, 8))
    comp = PreparedComposition("S", "#000000", ())
    pipe.resize(20, 10)
    assert pipe.tick(comp, DEFAULT_STATE).size == (20, 10)
    pipe.close()
    assert pipe.surface is None
    assert pipe.tick(comp, DEFAULT_STATE) is None
