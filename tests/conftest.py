"""Test fixtures for pyramidview tests."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication

from pyramidview.config import ViewerSettings
from pyramidview.core.iiif import ImageFeature, ImageFormat
from pyramidview.core.tile_cache import LoadState
from pyramidview.core.tiled_image import TiledImage
from pyramidview.core.types import Size

ENDPOINT = "https://iiif_end_point/uuid"
TILE_SIZE = 1024
LEVELS = [Size(678, 478), Size(1357, 955), Size(2713, 1910)]


@pytest.fixture(scope="session")
def qapp():
    """Create a Qt application for testing (shared across all test files)."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_image() -> TiledImage:
    """Three-level pyramid (678x478, 1357x955, 2713x1910) with 1024px tiles."""
    return TiledImage(
        ENDPOINT,
        Size(TILE_SIZE, TILE_SIZE),
        list(LEVELS),
        ImageFormat.PNG,
        {ImageFeature.SIZE_BY_WH_LISTED},
        list(LEVELS),
    )


@pytest.fixture
def settings() -> ViewerSettings:
    """Default settings, independent of the environment."""
    return ViewerSettings()


@pytest.fixture
def v2_info() -> dict:
    """IIIF Image API 2 description of the sample pyramid."""
    return {
        "@context": "http://iiif.io/api/image/2/context.json",
        "@id": ENDPOINT,
        "protocol": "http://iiif.io/api/image",
        "width": 2713,
        "height": 1910,
        "sizes": [
            {"width": 678, "height": 477},
            {"width": 1356, "height": 955},
        ],
        "tiles": [{"width": 1024, "scaleFactors": [1, 2, 4]}],
        "profile": [
            "http://iiif.io/api/image/2/level2.json",
            {
                "formats": ["png", "webp"],
                "qualities": ["gray"],
                "supports": ["regionSquare", "vendorExtension"],
            },
        ],
    }


@pytest.fixture
def v3_info() -> dict:
    """IIIF Image API 3 description of the sample pyramid."""
    return {
        "@context": "http://iiif.io/api/image/3/context.json",
        "id": ENDPOINT,
        "type": "ImageService3",
        "protocol": "http://iiif.io/api/image",
        "profile": "level1",
        "width": 2713,
        "height": 1910,
        "tiles": [{"width": 512, "height": 256, "scaleFactors": [1, 2, 4, 8]}],
        "extraFormats": ["png"],
        "extraFeatures": ["sizeByWh", "rotationArbitrary"],
    }


@pytest.fixture
def v2_info_json(v2_info: dict) -> bytes:
    return json.dumps(v2_info).encode()


class FakeLoader:
    """Asset loader whose load states are driven by the test."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.states: dict[int, LoadState] = {}
        self.released: list[int] = []

    def load(self, url: str) -> Any:
        handle = len(self.urls)
        self.urls.append(url)
        self.states[handle] = LoadState.LOADING
        return handle

    def get_load_state(self, handle: Any) -> LoadState:
        return self.states.get(handle, LoadState.NOT_LOADED)

    def release(self, handle: Any) -> None:
        self.released.append(handle)

    def finish_all(self, state: LoadState = LoadState.LOADED) -> None:
        for handle, current in self.states.items():
            if current is LoadState.LOADING:
                self.states[handle] = state


@pytest.fixture
def loader() -> FakeLoader:
    return FakeLoader()
