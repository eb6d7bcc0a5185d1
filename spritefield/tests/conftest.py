"""pytest configuration file."""

import logging
import random

import pytest
from PIL import Image

from spritefield.core.controller import CompositionController
from spritefield.core.render import RenderConfig
from spritefield.core.state import DEFAULT_STATE
from spritefield.data.assets import ICON_ASSETS
from spritefield.utils.icons import AssetCache


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (renders many frames)")


@pytest.fixture(autouse=True, scope="session")
def _quiet_logs():
    logging.getLogger("spritefield").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.ERROR)
    yield


def _square_mask(_asset):
    img = Image.new("L", (8, 8), 0)
    img.paste(255, (2, 2, 6, 6))
    return img


@pytest.fixture
def stub_assets():
    """Cache whose loader returns a small square instead of reading files."""
    cache = AssetCache(ICON_ASSETS, loader=_square_mask)
    cache.request_all()
    cache.wait(timeout=5)
    yield cache
    cache.close()


@pytest.fixture
def published():
    return []


@pytest.fixture
def controller(stub_assets, published):
    ctl = CompositionController(
        DEFAULT_STATE,
        render_config=RenderConfig(width=64, height=64),
        assets=stub_assets,
        on_state_change=published.append,
        rng=random.Random(1234),
    )
    published.clear()
    yield ctl
    ctl.destroy()
