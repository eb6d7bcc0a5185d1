from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Callable, Tuple

import numpy as np
from PIL import Image, ImageFilter
from scipy.ndimage import gaussian_filter

from ..core.modes import BlendMode

log = logging.getLogger(__name__)

BLUR_ENV = "SPRITEFIELD_BLUR"


class BlurBackend(str, Enum):
    PIL = "pil"
    SCIPY = "scipy"
    BOX = "box"


def luminance(arr: np.ndarray, weights: Tuple[float, float, float] = (0.299, 0.587, 0.114)) -> np.ndarray:
    """Weighted gray of the first three channels, same scale as the input."""
    r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
    return weights[0] * r + weights[1] * g + weights[2] * b


# base (b) and top (t) are float arrays on a 0..255 scale
BLEND_FNS: dict[BlendMode, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    BlendMode.NONE: lambda b, t: np.broadcast_to(t, b.shape),
    BlendMode.MULTIPLY: lambda b, t: b * t / 255.0,
    BlendMode.SCREEN: lambda b, t: 255.0 - (255.0 - b) * (255.0 - t) / 255.0,
    BlendMode.OVERLAY: lambda b, t: np.where(
        b < 128.0, 2.0 * b * t / 255.0, 255.0 - 2.0 * (255.0 - b) * (255.0 - t) / 255.0
    ),
    BlendMode.HARD_LIGHT: lambda b, t: np.where(
        t < 128.0, 2.0 * b * t / 255.0, 255.0 - 2.0 * (255.0 - b) * (255.0 - t) / 255.0
    ),
}


def blend_into(
    canvas: np.ndarray,
    box: Tuple[int, int, int, int],
    alpha: np.ndarray,
    color: np.ndarray,
    mode: BlendMode,
) -> None:
    """Blend a solid ``color`` into ``canvas[box]`` in place, weighted by ``alpha`` (0..1)."""
    x0, y0, x1, y1 = box
    region = canvas[y0:y1, x0:x1, :3]
    a = alpha[..., None]
    blended = BLEND_FNS[mode](region, color)
    region[...] = region * (1.0 - a) + blended * a


def box_blur(arr: np.ndarray, radius: int) -> np.ndarray:
    """Separable box blur with edge clamping; works on HxW or HxWxC arrays."""
    radius = int(radius)
    if radius <= 0:
        return arr
    src = arr.astype(np.float32)
    size = 2 * radius + 1
    out = src
    for axis in (1, 0):
        pad = [(0, 0)] * out.ndim
        pad[axis] = (radius + 1, radius)
        padded = np.pad(out, pad, mode="edge")
        csum = np.cumsum(padded, axis=axis)
        hi = np.take(csum, np.arange(size, size + out.shape[axis]), axis=axis)
        lo = np.take(csum, np.arange(0, out.shape[axis]), axis=axis)
        out = (hi - lo) / size
    return out


def default_blur_backend() -> BlurBackend:
    raw = os.environ.get(BLUR_ENV, BlurBackend.PIL.value).strip().lower()
    try:
        return BlurBackend(raw)
    except ValueError:
        log.warning("Unknown %s=%r, using the box blur", BLUR_ENV, raw)
        return BlurBackend.BOX


def blur_image(img: Image.Image, radius: float, backend: BlurBackend | None = None) -> Image.Image:
    """Blur an RGB/RGBA image; the box backend is the degraded path."""
    if radius <= 0:
        return img
    backend = backend or default_blur_backend()
    if backend is BlurBackend.PIL:
        return img.filter(ImageFilter.GaussianBlur(radius=radius))
    arr = np.asarray(img, dtype=np.float32)
    if backend is BlurBackend.SCIPY:
        sigma = (radius, radius, 0) if arr.ndim == 3 else radius
        out = gaussian_filter(arr, sigma=sigma)
    else:
        out = box_blur(arr, int(round(radius)))
    return Image.fromarray(np.clip(out + 0.5, 0, 255).astype(np.uint8), img.mode)
