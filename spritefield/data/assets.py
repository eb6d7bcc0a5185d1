from __future__ import annotations

import random
from dataclasses import dataclass
from pathlib import Path

SPRITES_DIR = Path(__file__).resolve().parent / "sprites"


@dataclass(frozen=True)
class IconAsset:
    id: str
    label: str
    url: str

    @property
    def file_name(self) -> str:
        return self.url.rsplit("/", 1)[-1]


def _sprite_asset(asset_id: str, label: str, file_name: str) -> IconAsset:
    return IconAsset(asset_id, label, f"/sprites/{file_name}")


ICON_ASSETS: tuple[IconAsset, ...] = (
    _sprite_asset("pacman", "Pac-Man", "pacman.pbm"),
    _sprite_asset("pinky", "Pinky", "pinky.pbm"),
    _sprite_asset("space-invader-1", "Space Invader 01", "space-invader-01.pbm"),
    _sprite_asset("space-invader-2", "Space Invader 02", "space-invader-02.pbm"),
)

ICON_ASSET_IDS: tuple[str, ...] = tuple(a.id for a in ICON_ASSETS)


def get_icon_asset(asset_id: str) -> IconAsset | None:
    for asset in ICON_ASSETS:
        if asset.id == asset_id:
            return asset
    return None


def resolve_icon_asset_id(asset_id: str | None, registry: tuple[IconAsset, ...] = ICON_ASSETS) -> str:
    """Unknown or empty ids fall back to the first registered asset."""
    ids = [a.id for a in registry]
    if asset_id and asset_id in ids:
        return asset_id
    return ids[0]


def random_icon_asset_id(rng: random.Random) -> str:
    return rng.choice(ICON_ASSET_IDS)
