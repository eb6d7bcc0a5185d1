from __future__ import annotations

from typing import Callable, Tuple

RGB = Tuple[int, int, int]


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def hex_to_rgb(value: str) -> RGB:
    value = value.strip().lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #RRGGBB color, got {value!r}")
    try:
        return tuple(int(value[i : i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]
    except ValueError as exc:
        raise ValueError(f"Invalid hex color {value!r}") from exc


def rgb_to_hex(rgb: RGB) -> str:
    return "#" + "".join(f"{int(clamp(round(c), 0, 255)):02x}" for c in rgb)


def hex_to_hsl(value: str) -> tuple[float, float, float]:
    """Return (hue degrees, saturation %, lightness %)."""
    r, g, b = (c / 255.0 for c in hex_to_rgb(value))
    hi = max(r, g, b)
    lo = min(r, g, b)
    h = 0.0
    s = 0.0
    l = (hi + lo) / 2.0
    if hi != lo:
        d = hi - lo
        s = d / (2.0 - hi - lo) if l > 0.5 else d / (hi + lo)
        if hi == r:
            h = (g - b) / d + (6.0 if g < b else 0.0)
        elif hi == g:
            h = (b - r) / d + 2.0
        else:
            h = (r - g) / d + 4.0
        h /= 6.0
    return (h * 360.0) % 360.0, s * 100.0, l * 100.0


def _hue_to_rgb(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def _round_half_up(x: float) -> int:
    return int(x + 0.5)


def hsl_to_hex(h: float, s: float, l: float) -> str:
    h = h % 360.0
    sat = clamp(s, 0.0, 100.0) / 100.0
    light = clamp(l, 0.0, 100.0) / 100.0
    if sat == 0:
        gray = _round_half_up(light * 255)
        return rgb_to_hex((gray, gray, gray))
    q = light * (1 + sat) if light < 0.5 else light + sat - light * sat
    p = 2 * light - q
    hn = h / 360.0
    return rgb_to_hex(
        (
            _round_half_up(_hue_to_rgb(p, q, hn + 1 / 3) * 255),
            _round_half_up(_hue_to_rgb(p, q, hn) * 255),
            _round_half_up(_hue_to_rgb(p, q, hn - 1 / 3) * 255),
        )
    )


def jitter_color(value: str, variance: float, stream: Callable[[], float]) -> str:
    """Shift hue/saturation/lightness by up to ±30°/±25/±20 scaled by variance.

    Always consumes three draws from ``stream``.
    """
    variance = clamp(float(variance), 0.0, 1.0)
    hue_shift = (stream() - 0.5) * variance * 60.0
    sat_shift = (stream() - 0.5) * variance * 50.0
    light_shift = (stream() - 0.5) * variance * 40.0
    if variance == 0.0:
        return value
    h, s, l = hex_to_hsl(value)
    return hsl_to_hex(h + hue_shift, s + sat_shift, l + light_shift)
