"""Background loading of icon bitmaps into a polled mask cache."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, Optional

from PIL import Image, ImageOps

from ..data.assets import ICON_ASSETS, SPRITES_DIR, IconAsset

log = logging.getLogger(__name__)

Loader = Callable[[IconAsset], Image.Image]


def sprite_path(asset: IconAsset, sprites_dir: Path = SPRITES_DIR) -> Path:
    return sprites_dir / asset.file_name


def load_icon_mask(asset: IconAsset, sprites_dir: Path = SPRITES_DIR) -> Image.Image:
    """Decode a bundled bitmap into an 'L' mask with the sprite at 255.

    PBM stores ink as black, so the decoded image is inverted.
    """
    path = sprite_path(asset, sprites_dir)
    with Image.open(path) as img:
        img.load()
        return ImageOps.invert(img.convert("L"))


class AssetCache:
    """Loads icon masks on a worker pool; the render loop polls by id.

    Results are written once per id. After ``close`` any load that
    finishes is dropped.
    """

    def __init__(
        self,
        assets: Iterable[IconAsset] = ICON_ASSETS,
        *,
        loader: Optional[Loader] = None,
        max_workers: int = 2,
        thread_name_prefix: str = "icon-load",
    ) -> None:
        self._assets = {a.id: a for a in assets}
        self._loader = loader or load_icon_mask
        self._lock = Lock()
        self._masks: dict[str, Image.Image] = {}
        self._pending: dict[str, Future] = {}
        self._failed: set[str] = set()
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)

    @property
    def closed(self) -> bool:
        return self._closed

    def request(self, asset_id: str) -> Optional[Future]:
        """Queue a load for ``asset_id`` unless it is loaded, pending or unknown."""
        with self._lock:
            if self._closed or asset_id in self._masks or asset_id in self._failed:
                return None
            if asset_id in self._pending:
                return self._pending[asset_id]
            asset = self._assets.get(asset_id)
            if asset is None:
                log.warning("Unknown icon asset %r", asset_id)
                self._failed.add(asset_id)
                return None
            future = self._executor.submit(self._load, asset)
            self._pending[asset_id] = future
        return future

    def request_all(self) -> list[Future]:
        futures = [self.request(aid) for aid in list(self._assets)]
        return [f for f in futures if f is not None]

    def _load(self, asset: IconAsset) -> Optional[Image.Image]:
        # runs on the pool; the mask is published before the future resolves
        try:
            mask = self._loader(asset)
        except Exception as exc:
            log.warning("Failed to load icon %r: %s", asset.id, exc)
            with self._lock:
                self._pending.pop(asset.id, None)
                self._failed.add(asset.id)
            return None
        with self._lock:
            self._pending.pop(asset.id, None)
            if self._closed:
                return None
            self._masks.setdefault(asset.id, mask)
        log.debug("Loaded icon %r (%dx%d)", asset.id, *mask.size)
        return mask

    def get(self, asset_id: str) -> Optional[Image.Image]:
        with self._lock:
            return self._masks.get(asset_id)

    def is_failed(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._failed

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every pending load has finished; True if none remain."""
        with self._lock:
            pending = list(self._pending.values())
        if pending:
            wait_futures(pending, timeout=timeout)
        with self._lock:
            return not self._pending

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for future in self._pending.values():
                future.cancel()
            self._pending.clear()
            self._masks.clear()
        self._executor.shutdown(wait=False, cancel_futures=True)
