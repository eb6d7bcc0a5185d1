"""Post-effects for rendered frames.

Every filter takes a PIL image plus parameters on a 0-100 scale and returns
a new image. Zero intensity (50 for contrast) returns the input untouched,
as does a missing or empty surface. Alpha, when present, is carried through.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

import numpy as np
from PIL import Image, ImageDraw

from ..utils.image_ops import BLEND_FNS, BlurBackend, blur_image, luminance
from .modes import BlendMode

log = logging.getLogger(__name__)

SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)
SCANLINE_HEIGHT = 2
SCANLINE_GAP = 4


def _usable(img: Optional[Image.Image]) -> bool:
    return img is not None and img.width > 0 and img.height > 0


def _split(img: Image.Image):
    """Float RGB array plus the alpha band (or None)."""
    if img.mode == "RGBA":
        arr = np.asarray(img, dtype=np.float32)
        return arr[..., :3].copy(), arr[..., 3]
    return np.asarray(img.convert("RGB"), dtype=np.float32), None


def _merge(rgb: np.ndarray, alpha: Optional[np.ndarray]) -> Image.Image:
    out = np.clip(rgb + 0.5, 0, 255).astype(np.uint8)
    if alpha is None:
        return Image.fromarray(out, "RGB")
    a = np.clip(alpha + 0.5, 0, 255).astype(np.uint8)
    return Image.fromarray(np.dstack([out, a]), "RGBA")


def drop_shadow(
    img: Optional[Image.Image],
    offset_x: float = 0,
    offset_y: float = 0,
    blur: float = 0,
    opacity: float = 0,
    backend: Optional[BlurBackend] = None,
) -> Optional[Image.Image]:
    """Offset, blurred copy of the image composited beneath it.

    Offsets are a percentage of 10% of the longest side. The shadow only
    shows where the frame itself has transparency.
    """
    if not _usable(img) or opacity <= 0:
        return img
    src = img.convert("RGBA")
    width, height = src.size
    max_offset = max(width, height) * 0.1
    dx = int(round(offset_x / 100.0 * max_offset))
    dy = int(round(offset_y / 100.0 * max_offset))
    radius = max(1, int(blur / 100.0 * 20))
    pad = max(abs(dx), abs(dy)) + radius * 2

    shadow = Image.new("RGBA", (width + pad * 2, height + pad * 2), (0, 0, 0, 0))
    shadow.paste(src, (pad + dx, pad + dy))
    shadow = blur_image(shadow, radius, backend).crop((pad, pad, pad + width, pad + height))
    alpha = np.asarray(shadow.getchannel("A"), dtype=np.float32) * min(opacity, 100) / 100.0
    shadow.putalpha(Image.fromarray(np.clip(alpha, 0, 255).astype(np.uint8), "L"))

    result = Image.alpha_composite(Image.new("RGBA", (width, height), (0, 0, 0, 0)), shadow)
    result = Image.alpha_composite(result, src)
    return result if img.mode == "RGBA" else result.convert("RGB")


def glow(
    img: Optional[Image.Image],
    intensity: float = 0,
    radius: float = 0,
    backend: Optional[BlurBackend] = None,
) -> Optional[Image.Image]:
    """Screen a blurred copy over the image at ``intensity * 0.6`` opacity."""
    if not _usable(img) or intensity <= 0:
        return img
    base, alpha = _split(img)
    blur_radius = max(1, int(radius / 100.0 * 15))
    blurred = np.asarray(blur_image(img.convert("RGB"), blur_radius, backend), dtype=np.float32)
    a = min(intensity, 100) / 100.0 * 0.6
    screened = BLEND_FNS[BlendMode.SCREEN](base, blurred)
    return _merge(base * (1 - a) + screened * a, alpha)


def scanlines(img: Optional[Image.Image], strength: float = 0) -> Optional[Image.Image]:
    """Darken 2px rows every 6px with a multiply blend."""
    if not _usable(img) or strength <= 0:
        return img
    base, alpha = _split(img)
    # half-black rows, multiplied in at strength * 0.3
    darken = 0.5 * min(strength, 100) / 100.0 * 0.3
    rows = np.arange(base.shape[0]) % (SCANLINE_HEIGHT + SCANLINE_GAP) < SCANLINE_HEIGHT
    base[rows] *= 1.0 - darken
    return _merge(base, alpha)


def sepia(img: Optional[Image.Image], intensity: float = 0) -> Optional[Image.Image]:
    if not _usable(img) or intensity <= 0:
        return img
    base, alpha = _split(img)
    toned = np.minimum(base @ SEPIA_MATRIX.T, 255.0)
    f = min(intensity, 100) / 100.0
    return _merge(base + (toned - base) * f, alpha)


def grayscale(img: Optional[Image.Image], intensity: float = 0) -> Optional[Image.Image]:
    if not _usable(img) or intensity <= 0:
        return img
    base, alpha = _split(img)
    gray = luminance(base)[..., None]
    f = min(intensity, 100) / 100.0
    return _merge(base + (gray - base) * f, alpha)


def contrast(img: Optional[Image.Image], amount: float = 50) -> Optional[Image.Image]:
    """``factor * (c - 128) + 128`` with factor mapped linearly from 0..100 to -1..1."""
    if not _usable(img) or amount == 50:
        return img
    base, alpha = _split(img)
    factor = (max(0.0, min(100.0, amount)) - 50.0) / 50.0
    return _merge(np.clip(factor * (base - 128.0) + 128.0, 0, 255), alpha)


def halftone(
    img: Optional[Image.Image],
    dot_size: float = 50,
    angle: float = 0,
    intensity: float = 0,
) -> Optional[Image.Image]:
    """Multiply a rotated dot grid over the image; darker samples get larger dots."""
    if not _usable(img) or intensity <= 0:
        return img
    base, alpha = _split(img)
    height, width = base.shape[:2]
    size_factor = max(0.0, min(100.0, dot_size)) / 100.0
    spacing = max(4, int(20 - size_factor * 16))
    radius = max(1, int(size_factor * spacing * 0.4))
    rad = math.radians(angle)
    cos_a, sin_a = math.cos(rad), math.sin(rad)
    cx, cy = width / 2, height / 2
    ink = int(round(255 * (1 - min(intensity, 100) / 100.0)))
    bright = luminance(base) / 255.0

    pattern = Image.new("L", (width, height), 255)
    draw = ImageDraw.Draw(pattern)
    for y in range(0, height + spacing, spacing):
        py = min(height - 1, y)
        for x in range(0, width + spacing, spacing):
            dot = radius * (1 - bright[py, min(width - 1, x)])
            if dot <= 0.5:
                continue
            dx, dy = x - cx, y - cy
            rx = cx + dx * cos_a - dy * sin_a
            ry = cy + dx * sin_a + dy * cos_a
            draw.ellipse((rx - dot, ry - dot, rx + dot, ry + dot), fill=ink)

    mult = np.asarray(pattern, dtype=np.float32)[..., None] / 255.0
    return _merge(base * mult, alpha)


FILTERS: dict[str, Callable[..., Optional[Image.Image]]] = {
    "drop_shadow": drop_shadow,
    "glow": glow,
    "scanlines": scanlines,
    "sepia": sepia,
    "grayscale": grayscale,
    "contrast": contrast,
    "halftone": halftone,
}


def parse_effect(text: str) -> tuple[str, dict[str, Any]]:
    """Parse ``name`` or ``name:key=value,key=value`` into a chain step."""
    name, _, raw = text.partition(":")
    name = name.strip().replace("-", "_")
    if name not in FILTERS:
        raise ValueError(f"Unknown effect {name!r}; choose from {', '.join(FILTERS)}")
    params: dict[str, Any] = {}
    for item in filter(None, (p.strip() for p in raw.split(","))):
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value in {text!r}, got {item!r}")
        try:
            params[key.strip()] = float(value)
        except ValueError as exc:
            raise ValueError(f"Effect parameter {key!r} must be a number") from exc
    return name, params


class PostFXChain:
    """Caller-ordered list of filters applied to each frame."""

    def __init__(self, steps=None, backend: Optional[BlurBackend] = None):
        self.steps: list[tuple[str, dict[str, Any]]] = []
        self.backend = backend
        for name, params in steps or ():
            self.add(name, **params)

    def add(self, name: str, **params: Any) -> "PostFXChain":
        if name not in FILTERS:
            raise ValueError(f"Unknown effect {name!r}")
        self.steps.append((name, dict(params)))
        return self

    def clear(self) -> None:
        self.steps.clear()

    def __len__(self) -> int:
        return len(self.steps)

    def apply(self, img: Optional[Image.Image]) -> Optional[Image.Image]:
        if not _usable(img):
            return img
        result = img
        for name, params in self.steps:
            fn = FILTERS[name]
            if fn in (drop_shadow, glow) and self.backend is not None:
                params = {"backend": self.backend, **params}
            try:
                result = fn(result, **params)
            except TypeError as exc:
                log.warning("Skipping effect %s: %s", name, exc)
        return result
