"""Deterministic frame export (GIF sequences and numbered PNG frames)."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import imageio.v3 as iio
import numpy as np
from PIL import Image

from .core.controller import CompositionController
from .core.motion import AnimationClock
from .core.postfx import PostFXChain

log = logging.getLogger(__name__)


def render_frames(
    controller: CompositionController,
    frames: int,
    fps: int = 30,
    chain: Optional[PostFXChain] = None,
    upscale: float = 1.0,
    progress: Optional[Callable[[int], None]] = None,
) -> list[np.ndarray]:
    """Render ``frames`` RGB arrays on a fixed timeline of ``1000 / fps`` ms per frame.

    Uses its own clock, so the controller's live animation is untouched.
    """
    fps = max(1, int(fps))
    delta_ms = 1000.0 / fps
    speed_factor = max(controller.get_state().motion_speed / 100.0, 0.0)
    clock = AnimationClock(controller.renderer.config.ideal_frame_ms)
    out = []
    for i in range(max(0, int(frames))):
        t_now = clock.advance(delta_ms, speed_factor)
        im = controller.render_at(t_now)
        if im is None:
            log.warning("Controller destroyed during export, stopping at frame %d", i)
            break
        if chain:
            im = chain.apply(im)
        if abs(upscale - 1.0) > 1e-6:
            im = im.resize((max(1, int(im.width * upscale)), max(1, int(im.height * upscale))), Image.NEAREST)
        out.append(np.array(im.convert("RGB")))
        if progress is not None:
            progress(int((i + 1) * 100 / frames))
    return out


def write_gif(path: str | Path, frames: list[np.ndarray], fps: int = 30, loop: bool = True) -> Path:
    if not frames:
        raise ValueError("No frames to write")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    dur = max(10, int(1000 / max(1, fps)))
    # pillow plugin: duration in ms, loop=0 repeats forever
    iio.imwrite(path, frames, extension=".gif", duration=dur, loop=0 if loop else 1)
    log.info("Wrote %d frames to %s", len(frames), path)
    return path


def write_png_frames(directory: str | Path, frames: list[np.ndarray], prefix: str = "frame") -> list[Path]:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i, frame in enumerate(frames):
        p = directory / f"{prefix}_{i:04d}.png"
        iio.imwrite(p, frame, extension=".png")
        paths.append(p)
    log.info("Wrote %d PNG frames to %s", len(paths), directory)
    return paths


def write_png(path: str | Path, image: Image.Image) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    iio.imwrite(path, np.asarray(image), extension=".png")
    return path
