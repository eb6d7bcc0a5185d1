from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Palette:
    id: str
    name: str
    colors: tuple[str, str, str, str, str]


PALETTES: tuple[Palette, ...] = (
    Palette("neon", "Neon Pop", ("#ff3cac", "#784ba0", "#2b86c5", "#00f5d4", "#fcee0c")),
    Palette("pastel", "Soft Pastel", ("#f7c5cc", "#ffdee8", "#c4f3ff", "#d9f0ff", "#fdf5d7")),
    Palette("sunset", "Sunset Drive", ("#ff7b00", "#ff5400", "#ff0054", "#ad00ff", "#6300ff")),
    Palette("synth", "Synthwave", ("#ff4ecd", "#ff9f1c", "#2ec4b6", "#cbf3f0", "#011627")),
    Palette("aurora", "Aurora Glass", ("#00c6ff", "#0072ff", "#7b42f6", "#b01eff", "#f441a5")),
    Palette("arcade", "Arcade Neon", ("#f72585", "#7209b7", "#3a0ca3", "#4361ee", "#4cc9f0")),
    Palette("flora", "Flora Bloom", ("#ffafbd", "#ffc3a0", "#ffdfd3", "#d0ffb7", "#86fde8")),
    Palette("ember", "Ember Glow", ("#ff4e00", "#ec9f05", "#f5c469", "#ffd17c", "#ffd8a9")),
    Palette("oceanic", "Oceanic Pulse", ("#031a6b", "#033860", "#087ca7", "#3fd7f2", "#9ef6ff")),
    Palette("void", "Midnight Void", ("#0f0f1c", "#1f1147", "#371a79", "#5d2e9a", "#8c44ff")),
)

DEFAULT_PALETTE_ID = "neon"

_BY_ID = {p.id: p for p in PALETTES}


def find_palette(palette_id: str) -> Optional[Palette]:
    return _BY_ID.get(palette_id)


def get_palette(palette_id: str) -> Palette:
    """Unknown ids resolve to the first palette."""
    return _BY_ID.get(palette_id, PALETTES[0])


def random_palette(rng: random.Random) -> Palette:
    return rng.choice(PALETTES)
