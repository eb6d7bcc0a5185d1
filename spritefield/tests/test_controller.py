"""Tests for CompositionController mutations, randomizers and the frame loop."""

import random

import pytest
from PIL import Image

from spritefield.core.controller import CompositionController
from spritefield.core.modes import BackgroundMode, BlendMode, LayoutVariant, MovementMode, SpriteMode
from spritefield.core.render import RenderConfig
from spritefield.core.state import DEFAULT_STATE
from spritefield.data.assets import ICON_ASSET_IDS


class TestScenarios:
    def test_default_seed_composition(self, controller):
        comp = controller.composition
        assert controller.get_state().seed == "DEADBEEF"
        assert comp.layers[0].tile_count >= 1
        # recomputing with unchanged inputs is idempotent
        assert controller.set_scale_base(controller.get_state().scale_base)
        assert controller.composition == comp

    def test_randomize_all_changes_seed(self, controller, published):
        before = controller.get_state().seed
        assert controller.randomize_all()
        assert controller.get_state().seed != before
        assert published[-1]["seed"] == controller.get_state().seed
        assert controller.get_state().blend_mode_auto

    def test_light_setter_keeps_composition(self, controller):
        comp = controller.composition
        controller.set_motion_speed(12)
        assert controller.composition is comp
        controller.set_movement_mode("comet")
        assert controller.composition is comp
        controller.set_scale_base(10)
        assert controller.composition is not comp

    def test_nebula_preset(self, controller):
        controller.apply_nebula_preset()
        state = controller.get_state()
        assert state.blend_mode is BlendMode.SCREEN
        assert not state.blend_mode_auto
        assert state.movement_mode is MovementMode.ORBIT
        assert state.rotation_enabled and state.rotation_amount == 72
        assert {layer.blend_mode for layer in controller.composition.layers} == {BlendMode.SCREEN}


class TestSetters:
    def test_clamping(self, controller):
        controller.set_scale_percent(-50)
        assert controller.get_state().scale_percent == 0
        controller.set_scale_percent(5000)
        assert controller.get_state().scale_percent == 1000
        controller.set_layer_opacity(0)
        assert controller.get_state().layer_opacity == 15
        controller.set_rotation_amount(720)
        assert controller.get_state().rotation_amount == 180
        controller.set_palette_variance(float("nan"))
        assert controller.get_state().palette_variance == 0

    def test_numeric_strings_are_accepted(self, controller):
        assert controller.set_scale_spread("42")
        assert controller.get_state().scale_spread == 42

    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.set_blend_mode("SPARKLE"),
            lambda c: c.set_sprite_mode("blob"),
            lambda c: c.set_movement_mode("teleport"),
            lambda c: c.set_background_mode("plaid"),
            lambda c: c.set_layout_variant("hex"),
            lambda c: c.use_palette("no-such-palette"),
            lambda c: c.use_palette(["neon"]),
            lambda c: c.set_rotation_enabled("maybe"),
            lambda c: c.set_blend_mode_auto(None),
            lambda c: c.set_scale_base("lots"),
            lambda c: c.set_motion_speed(None),
            lambda c: c.set_rotation_speed(True),
            lambda c: c.set_seed("   "),
        ],
    )
    def test_rejected_mutations_change_nothing(self, controller, published, call):
        state = controller.get_state()
        comp = controller.composition
        assert call(controller) is False
        assert controller.get_state() is state
        assert controller.composition is comp
        assert published == []

    def test_every_accepted_mutation_publishes(self, controller, published):
        controller.set_scale_percent(100)
        controller.set_motion_speed(30)
        controller.use_palette("ember")
        assert len(published) == 3
        assert published[-1]["palette_id"] == "ember"
        assert published[-1]["motion_speed"] == 30

    @pytest.mark.parametrize("text, expected", [("false", False), ("off", False), ("0", False), ("true", True), ("Yes", True), (1, True)])
    def test_flag_setters_parse_client_strings(self, controller, text, expected):
        assert controller.set_rotation_enabled(text)
        assert controller.get_state().rotation_enabled is expected
        assert controller.set_blend_mode_auto(text)
        assert controller.get_state().blend_mode_auto is expected

    def test_rotation_amount_enables_rotation(self, controller):
        assert not controller.get_state().rotation_enabled
        controller.set_rotation_amount(45)
        assert controller.get_state().rotation_enabled
        controller.set_rotation_enabled(False)
        assert not controller.get_state().rotation_enabled
        assert controller.get_state().rotation_amount == 45

    def test_blend_auto_remembers_manual_choice(self, controller):
        controller.set_blend_mode("OVERLAY")
        assert controller.get_state().blend_mode is BlendMode.OVERLAY
        assert not controller.get_state().blend_mode_auto
        controller.set_blend_mode_auto(True)
        snap = controller.snapshot()
        assert snap["blend_mode_auto"] is True
        assert snap["previous_blend_mode"] == "OVERLAY"
        controller.set_blend_mode_auto(False)
        assert controller.get_state().blend_mode is BlendMode.OVERLAY

    def test_enum_values_accept_names_and_members(self, controller):
        assert controller.set_sprite_mode(SpriteMode.HEXAGON)
        assert controller.set_background_mode("NEBULA")
        assert controller.set_layout_variant("pixel_cluster")
        state = controller.get_state()
        assert state.sprite_mode is SpriteMode.HEXAGON
        assert state.background_mode is BackgroundMode.NEBULA
        assert state.layout_variant is LayoutVariant.PIXEL_CLUSTER

    def test_icon_asset_falls_back(self, controller):
        controller.set_icon_asset("pinky")
        assert controller.get_state().icon_asset_id == "pinky"
        controller.set_icon_asset("missing")
        assert controller.get_state().icon_asset_id == "pacman"

    def test_set_seed(self, controller):
        controller.set_seed(" CAFEBABE ")
        assert controller.get_state().seed == "CAFEBABE"
        assert controller.composition.seed == "CAFEBABE"


class TestRandomizers:
    @pytest.mark.parametrize(
        "name",
        [
            "randomize_all",
            "randomize_icon",
            "randomize_colors",
            "randomize_scale",
            "randomize_scale_range",
            "randomize_motion",
            "randomize_blend_mode",
            "apply_single_tile_preset",
            "apply_nebula_preset",
            "apply_minimal_grid_preset",
            "reset",
        ],
    )
    def test_rolls_a_new_seed(self, controller, name):
        for _ in range(5):
            before = controller.get_state().seed
            getattr(controller, name)()
            assert controller.get_state().seed != before

    def test_randomize_all_ranges(self, controller):
        for _ in range(30):
            controller.randomize_all()
            s = controller.get_state()
            assert 50 <= s.scale_percent <= 800
            assert 35 <= s.scale_base <= 80
            assert 30 <= s.scale_spread <= 95
            assert 12 <= s.palette_variance <= 88
            assert 40 <= s.layer_opacity <= 82
            assert s.background_mode is BackgroundMode.PALETTE

    def test_randomize_all_resets_icon_for_shapes(self, controller):
        controller.set_icon_asset("pinky")
        for _ in range(30):
            controller.randomize_all()
            s = controller.get_state()
            if s.sprite_mode is not SpriteMode.ICON:
                assert s.icon_asset_id == ICON_ASSET_IDS[0]

    def test_randomize_icon_keeps_icon_mode(self, controller):
        controller.set_sprite_mode("icon")
        controller.randomize_icon()
        assert controller.get_state().sprite_mode is SpriteMode.ICON
        controller.set_sprite_mode("ring")
        controller.randomize_icon()
        assert controller.get_state().sprite_mode is not SpriteMode.ICON

    def test_randomize_blend_mode_is_manual(self, controller):
        controller.randomize_blend_mode()
        assert not controller.get_state().blend_mode_auto

    def test_minimal_grid_preset(self, controller):
        controller.apply_minimal_grid_preset()
        s = controller.get_state()
        assert s.blend_mode is BlendMode.MULTIPLY and not s.blend_mode_auto
        assert not s.rotation_enabled
        assert s.movement_mode is MovementMode.DRIFT

    def test_reset_restores_defaults(self, controller):
        controller.apply_nebula_preset()
        controller.tick(100)
        controller.reset()
        s = controller.get_state()
        assert s.with_changes(seed=DEFAULT_STATE.seed) == DEFAULT_STATE
        assert controller.renderer.animation.time == 0.0

    def test_rng_makes_randomizers_reproducible(self, stub_assets):
        def run():
            ctl = CompositionController(render_config=RenderConfig(32, 32), assets=stub_assets, rng=random.Random(5))
            ctl.randomize_all()
            ctl.randomize_motion()
            return ctl.snapshot()

        assert run() == run()


class TestLifecycle:
    def test_default_construction_rolls_a_seed(self, stub_assets):
        seeds = set()
        for n in range(3):
            ctl = CompositionController(render_config=RenderConfig(16, 16), assets=stub_assets, rng=random.Random(n))
            seeds.add(ctl.get_state().seed)
            assert ctl.get_state().with_changes(seed=DEFAULT_STATE.seed) == DEFAULT_STATE
        assert DEFAULT_STATE.seed not in seeds
        assert len(seeds) == 3

    def test_tick_renders_frames(self, controller):
        img = controller.tick(16.0)
        assert isinstance(img, Image.Image)
        assert img.size == (64, 64)
        assert controller.renderer.surface is img

    def test_resize_reflows_without_regenerating(self, controller):
        comp = controller.composition
        assert controller.resize(80, 40)
        assert controller.composition is comp
        assert controller.tick().size == (80, 40)

    def test_destroy_makes_everything_a_noop(self, controller, published):
        controller.destroy()
        assert controller.tick() is None
        assert controller.render_at(1.0) is None
        assert controller.set_scale_percent(10) is False
        assert controller.randomize_all() is False
        assert controller.reset() is False
        assert controller.resize(10, 10) is False
        assert published == []
        assert controller.assets.closed
        controller.destroy()

    def test_observer_errors_do_not_break_mutations(self, stub_assets):
        def boom(snapshot):
            raise RuntimeError("observer down")

        ctl = CompositionController(render_config=RenderConfig(32, 32), assets=stub_assets, on_state_change=boom)
        assert ctl.set_scale_percent(300)
        assert ctl.get_state().scale_percent == 300

    def test_snapshot_is_a_fresh_flat_dict(self, controller):
        snap = controller.snapshot()
        snap["seed"] = "changed"
        assert controller.snapshot()["seed"] == "DEADBEEF"
        assert snap["blend_mode"] == "NONE"
        assert snap["sprite_mode"] == "rounded"
