"""Tests for the minimap overlay."""

from __future__ import annotations

import pytest

from pyramidview.camera.viewport import OrthographicCamera
from pyramidview.core.types import Rect
from pyramidview.ui.minimap import THUMBNAIL_AREA, Minimap, get_thumbnail_scale_and_offset


@pytest.fixture
def minimap(qapp):
    return Minimap()


class TestThumbnailFit:
    """Tests for get_thumbnail_scale_and_offset."""

    def test_thumbnail_area(self):
        assert THUMBNAIL_AREA == 196.0

    def test_landscape(self):
        scale, offset = get_thumbnail_scale_and_offset(678.0, 478.0)

        assert scale == pytest.approx(196.0 / 678.0)
        assert offset[0] == pytest.approx(0.0)
        assert offset[1] == pytest.approx((196.0 - 478.0 * 196.0 / 678.0) / 2.0)

    def test_portrait(self):
        scale, offset = get_thumbnail_scale_and_offset(100.0, 200.0)

        assert scale == pytest.approx(0.98)
        assert offset == pytest.approx((49.0, 0.0))


class TestMinimapLifecycle:
    """Tests for image add/remove hooks."""

    def test_hidden_initially(self, minimap):
        assert minimap.visible is False
        assert minimap.thumbnailUrl == ""

    def test_added(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)

        assert minimap.visible is True
        assert minimap.thumbnailUrl == "https://iiif_end_point/uuid/full/678,478/0/default.png"
        rect = minimap.thumbnail_rect
        assert rect.width == pytest.approx(196.0)
        assert rect.center == pytest.approx((98.0, 98.0))

    def test_removed(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)
        minimap.on_tiled_image_removed()

        assert minimap.visible is False
        assert minimap.thumbnail_rect is None
        assert minimap.view_rect is None


class TestMinimapViewRect:
    """Tests for the view rectangle."""

    def test_without_image(self, minimap):
        assert minimap.update_view_rect(OrthographicCamera()) is None

    def test_whole_image_in_view(self, minimap, sample_image):
        """A viewport larger than the image is bounded by the minimap."""
        minimap.on_tiled_image_added(sample_image)
        camera = OrthographicCamera(
            translation=(1356.5, -955.0), scale=10.0, viewport_size=(800.0, 600.0)
        )

        rect = minimap.update_view_rect(camera)

        assert rect == Rect(0.0, 0.0, THUMBNAIL_AREA, THUMBNAIL_AREA)

    def test_zoomed_in(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)
        camera = OrthographicCamera(
            translation=(1356.5, -955.0), scale=1.0, viewport_size=(271.3, 191.0)
        )

        rect = minimap.update_view_rect(camera)

        assert rect.width == pytest.approx(19.6)
        assert rect.center == pytest.approx((98.0, 98.0))

    def test_signal_on_change(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)
        changes = []
        minimap.viewRectChanged.connect(lambda: changes.append(1))
        camera = OrthographicCamera(
            translation=(1356.5, -955.0), scale=1.0, viewport_size=(271.3, 191.0)
        )

        minimap.update_view_rect(camera)
        minimap.update_view_rect(camera)

        assert changes == [1]


class TestMinimapClick:
    """Tests for clicking on the minimap."""

    def test_centre_click(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)
        assert minimap.world_position_at(0.0, 0.0) == pytest.approx((1356.5, -955.0))

    def test_corner_click(self, minimap, sample_image):
        minimap.on_tiled_image_added(sample_image)
        assert minimap.world_position_at(-0.5, -0.5) == pytest.approx((0.0, 0.0))
        assert minimap.world_position_at(0.5, 0.5) == pytest.approx((2713.0, -1910.0))

    def test_without_image(self, minimap):
        assert minimap.world_position_at(0.0, 0.0) is None
