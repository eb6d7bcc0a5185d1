"""CompositionController: owns the parameter state and the frame loop.

Mutations go through one path: validate, merge into a new frozen state,
recompute the layout when the change affects it, then publish a snapshot
to the ``on_state_change`` observer. Rejected mutations change nothing and
publish nothing.
"""

from __future__ import annotations

import logging
import random
import time
from threading import RLock
from typing import Any, Callable, Optional

from PIL import Image

from ..data.assets import ICON_ASSET_IDS, random_icon_asset_id, resolve_icon_asset_id
from ..data.palettes import Palette, find_palette, get_palette, random_palette
from ..utils.icons import AssetCache
from .layout import PreparedComposition, compute
from .modes import (
    BLEND_MODE_POOL,
    MOVEMENT_POOL,
    SHAPE_POOL,
    SPRITE_MODE_POOL,
    AutoBlend,
    BackgroundMode,
    BlendMode,
    LayoutVariant,
    ManualBlend,
    MovementMode,
    SpriteMode,
    parse_enum,
)
from .render import RenderConfig, RenderPipeline
from .seeded import generate_seed_string
from .state import DEFAULT_STATE, MIN_DENSITY_PERCENT, ParameterState, coerce_flag, coerce_number

log = logging.getLogger(__name__)

StateObserver = Callable[[dict], None]
FrameRateObserver = Callable[[int], None]


class CompositionController:
    def __init__(
        self,
        state: Optional[ParameterState] = None,
        *,
        render_config: RenderConfig = RenderConfig(),
        assets: Optional[AssetCache] = None,
        on_state_change: Optional[StateObserver] = None,
        on_frame_rate: Optional[FrameRateObserver] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._lock = RLock()
        self._rng = rng or random.Random()
        if state is None:
            state = DEFAULT_STATE.with_changes(seed=generate_seed_string(self._rng))
        self._state = state
        self.on_state_change = on_state_change
        self.on_frame_rate = on_frame_rate
        self.last_frame_rate: Optional[int] = None
        self.destroyed = False

        if assets is None:
            assets = AssetCache()
            assets.request_all()
        self.assets = assets
        self.renderer = RenderPipeline(render_config, assets, self._frame_rate, clock)
        self._composition = compute(self._state, self.palette)
        self._publish()

    # --- read side ---

    def get_state(self) -> ParameterState:
        return self._state

    def snapshot(self) -> dict:
        return self._state.snapshot()

    @property
    def composition(self) -> PreparedComposition:
        return self._composition

    @property
    def palette(self) -> Palette:
        return get_palette(self._state.palette_id)

    # --- plumbing ---

    def _publish(self) -> None:
        if self.on_state_change is None:
            return
        try:
            self.on_state_change(self._state.snapshot())
        except Exception:
            log.exception("State observer failed")

    def _frame_rate(self, fps: int) -> None:
        self.last_frame_rate = fps
        if self.on_frame_rate is not None:
            self.on_frame_rate(fps)

    def _apply(self, recompute: bool = True, **changes: Any) -> bool:
        with self._lock:
            if self.destroyed:
                log.debug("Ignoring %s after destroy", ", ".join(changes) or "mutation")
                return False
            self._state = self._state.with_changes(**changes)
            if recompute:
                self._composition = compute(self._state, self.palette)
        self._publish()
        return True

    def _set_number(self, name: str, value: Any, recompute: bool = True, **extra: Any) -> bool:
        number = coerce_number(value)
        if number is None:
            log.debug("Rejected non-numeric %s=%r", name, value)
            return False
        return self._apply(recompute, **{name: number}, **extra)

    def _roll_seed(self) -> str:
        return generate_seed_string(self._rng, avoid=self._state.seed)

    def _randint(self, lo: int, hi: int) -> int:
        return self._rng.randint(lo, hi)

    # --- direct setters ---

    def set_scale_percent(self, value: float) -> bool:
        return self._set_number("scale_percent", value)

    def set_scale_base(self, value: float) -> bool:
        return self._set_number("scale_base", value)

    def set_scale_spread(self, value: float) -> bool:
        return self._set_number("scale_spread", value)

    def set_palette_variance(self, value: float) -> bool:
        return self._set_number("palette_variance", value)

    def set_motion_intensity(self, value: float) -> bool:
        return self._set_number("motion_intensity", value)

    def set_motion_speed(self, value: float) -> bool:
        return self._set_number("motion_speed", value, recompute=False)

    def set_layer_opacity(self, value: float) -> bool:
        return self._set_number("layer_opacity", value)

    def set_rotation_amount(self, value: float) -> bool:
        # a non-zero amount is pointless with rotation off
        return self._set_number("rotation_amount", value, rotation_enabled=True)

    def set_rotation_speed(self, value: float) -> bool:
        return self._set_number("rotation_speed", value)

    def set_rotation_enabled(self, value: bool) -> bool:
        flag = coerce_flag(value)
        if flag is None:
            log.debug("Rejected rotation flag %r", value)
            return False
        return self._apply(rotation_enabled=flag)

    def set_blend_mode(self, mode: BlendMode | str) -> bool:
        parsed = parse_enum(BlendMode, mode)
        if parsed is None:
            log.debug("Rejected blend mode %r", mode)
            return False
        return self._apply(blend=ManualBlend(parsed))

    def set_blend_mode_auto(self, value: bool) -> bool:
        flag = coerce_flag(value)
        if flag is None:
            log.debug("Rejected blend auto flag %r", value)
            return False
        remembered = self._state.blend.remembered
        if flag:
            return self._apply(blend=AutoBlend(remembered))
        return self._apply(blend=ManualBlend(remembered))

    def set_sprite_mode(self, mode: SpriteMode | str) -> bool:
        parsed = parse_enum(SpriteMode, mode)
        if parsed is None:
            log.debug("Rejected sprite mode %r", mode)
            return False
        return self._apply(sprite_mode=parsed)

    def set_icon_asset(self, asset_id: str) -> bool:
        return self._apply(icon_asset_id=resolve_icon_asset_id(asset_id))

    def use_palette(self, palette_id: str) -> bool:
        if not isinstance(palette_id, str) or find_palette(palette_id) is None:
            log.debug("Rejected palette %r", palette_id)
            return False
        return self._apply(palette_id=palette_id)

    def set_background_mode(self, mode: BackgroundMode | str) -> bool:
        parsed = parse_enum(BackgroundMode, mode)
        if parsed is None:
            log.debug("Rejected background mode %r", mode)
            return False
        return self._apply(background_mode=parsed)

    def set_movement_mode(self, mode: MovementMode | str) -> bool:
        parsed = parse_enum(MovementMode, mode)
        if parsed is None:
            log.debug("Rejected movement mode %r", mode)
            return False
        return self._apply(recompute=False, movement_mode=parsed)

    def set_layout_variant(self, variant: LayoutVariant | str) -> bool:
        parsed = parse_enum(LayoutVariant, variant)
        if parsed is None:
            log.debug("Rejected layout variant %r", variant)
            return False
        return self._apply(layout_variant=parsed)

    def set_seed(self, seed: str) -> bool:
        if not isinstance(seed, str) or not seed.strip():
            log.debug("Rejected seed %r", seed)
            return False
        return self._apply(seed=seed.strip())

    # --- randomizers and presets ---

    def randomize_all(self) -> bool:
        mode = self._rng.choice(SPRITE_MODE_POOL)
        changes: dict[str, Any] = dict(seed=self._roll_seed(), sprite_mode=mode)
        if mode is SpriteMode.ICON:
            changes["icon_asset_id"] = random_icon_asset_id(self._rng)
        else:
            changes["icon_asset_id"] = ICON_ASSET_IDS[0]
        changes.update(
            palette_id=random_palette(self._rng).id,
            scale_percent=self._randint(int(MIN_DENSITY_PERCENT), 800),
            scale_base=self._randint(35, 80),
            scale_spread=self._randint(30, 95),
            palette_variance=self._randint(12, 88),
            motion_intensity=self._randint(15, 90),
            motion_speed=self._randint(20, 85),
            layer_opacity=self._randint(40, 82),
            blend=AutoBlend(self._rng.choice(BLEND_MODE_POOL)),
            movement_mode=self._rng.choice(MOVEMENT_POOL),
            background_mode=BackgroundMode.PALETTE,
        )
        return self._apply(**changes)

    def randomize_icon(self) -> bool:
        seed = self._roll_seed()
        if self._state.sprite_mode is SpriteMode.ICON:
            return self._apply(seed=seed, icon_asset_id=random_icon_asset_id(self._rng))
        shape = self._rng.choice(SHAPE_POOL)
        return self._apply(seed=seed, sprite_mode=SpriteMode(shape.value))

    def randomize_colors(self) -> bool:
        return self._apply(
            seed=self._roll_seed(),
            palette_id=random_palette(self._rng).id,
            palette_variance=self._randint(15, 85),
        )

    def randomize_scale(self) -> bool:
        return self._apply(seed=self._roll_seed(), scale_base=self._randint(35, 80))

    def randomize_scale_range(self) -> bool:
        return self._apply(seed=self._roll_seed(), scale_spread=self._randint(30, 95))

    def randomize_motion(self) -> bool:
        return self._apply(
            seed=self._roll_seed(),
            motion_intensity=self._randint(15, 90),
            movement_mode=self._rng.choice(MOVEMENT_POOL),
            motion_speed=self._randint(25, 90),
        )

    def randomize_blend_mode(self) -> bool:
        return self._apply(seed=self._roll_seed(), blend=ManualBlend(self._rng.choice(BLEND_MODE_POOL)))

    def apply_single_tile_preset(self) -> bool:
        return self._apply(
            seed=self._roll_seed(),
            scale_percent=22,
            scale_base=85,
            scale_spread=45,
            movement_mode=MovementMode.PULSE,
            motion_intensity=28,
            motion_speed=65,
            rotation_enabled=True,
            rotation_amount=35,
        )

    def apply_nebula_preset(self) -> bool:
        return self._apply(
            seed=self._roll_seed(),
            scale_percent=320,
            scale_base=75,
            scale_spread=95,
            palette_variance=86,
            movement_mode=MovementMode.ORBIT,
            motion_intensity=74,
            motion_speed=90,
            blend=ManualBlend(BlendMode.SCREEN),
            layer_opacity=62,
            rotation_enabled=True,
            rotation_amount=72,
        )

    def apply_minimal_grid_preset(self) -> bool:
        return self._apply(
            seed=self._roll_seed(),
            scale_percent=65,
            scale_base=55,
            scale_spread=38,
            palette_variance=18,
            movement_mode=MovementMode.DRIFT,
            motion_intensity=20,
            motion_speed=45,
            blend=ManualBlend(BlendMode.MULTIPLY),
            layer_opacity=48,
            rotation_enabled=False,
            rotation_amount=0,
        )

    def reset(self) -> bool:
        """Back to defaults under a fresh seed; the animation clock restarts."""
        with self._lock:
            if self.destroyed:
                log.debug("Ignoring reset after destroy")
                return False
            self._state = DEFAULT_STATE.with_changes(seed=self._roll_seed())
            self._composition = compute(self._state, self.palette)
            self.renderer.reset_clock()
        self._publish()
        return True

    # --- frame loop ---

    def tick(self, delta_ms: Optional[float] = None) -> Optional[Image.Image]:
        with self._lock:
            if self.destroyed:
                return None
            return self.renderer.tick(self._composition, self._state, delta_ms)

    def render_at(self, time_value: float) -> Optional[Image.Image]:
        with self._lock:
            if self.destroyed:
                return None
            return self.renderer.render_at(self._composition, self._state, time_value)

    def resize(self, width: int, height: int) -> bool:
        """Reflow the current composition onto a new surface size."""
        with self._lock:
            if self.destroyed:
                log.debug("Ignoring resize after destroy")
                return False
            self.renderer.resize(width, height)
        return True

    def destroy(self) -> None:
        with self._lock:
            if self.destroyed:
                log.debug("destroy() called twice")
                return
            self.destroyed = True
            self.renderer.close()
            self.assets.close()
        log.info("Controller destroyed")
