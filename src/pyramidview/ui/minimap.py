"""Overview thumbnail with the current view rectangle."""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QRectF, Signal, Property

from pyramidview.camera.viewport import OrthographicCamera
from pyramidview.config import MINIMAP_BORDER, MINIMAP_SIZE, MINIMAP_THUMBNAIL_REQUEST
from pyramidview.core.tiled_image import TiledImage
from pyramidview.core.types import Point, Rect

logger = logging.getLogger(__name__)

#: Side of the square the thumbnail is fitted into
THUMBNAIL_AREA: float = MINIMAP_SIZE - 2.0 * MINIMAP_BORDER


def get_thumbnail_scale_and_offset(width: float, height: float) -> tuple[float, Point]:
    """Scale and centring offset fitting a ``width`` x ``height`` image in the minimap."""
    scale = THUMBNAIL_AREA / max(width, height)
    offset = (
        (THUMBNAIL_AREA - scale * width) / 2.0,
        (THUMBNAIL_AREA - scale * height) / 2.0,
    )
    return scale, offset


def _to_qrect(rect: Rect | None) -> QRectF:
    if rect is None:
        return QRectF()
    return QRectF(rect.min_x, rect.min_y, rect.width, rect.height)


class Minimap(QObject):
    """Minimap state for the overlay drawn by the QML layer.

    The owner calls :meth:`on_tiled_image_added` and
    :meth:`on_tiled_image_removed` when the shown image changes, and
    :meth:`update_view_rect` every frame.
    """

    visibleChanged = Signal()
    thumbnailChanged = Signal()
    viewRectChanged = Signal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._image: TiledImage | None = None
        self._thumbnail_url = ""
        self._thumbnail_rect: Rect | None = None
        self._view_rect: Rect | None = None

    @Property(bool, notify=visibleChanged)
    def visible(self) -> bool:
        return self._image is not None

    @Property(str, notify=thumbnailChanged)
    def thumbnailUrl(self) -> str:
        return self._thumbnail_url

    @Property(QRectF, notify=thumbnailChanged)
    def thumbnailRect(self) -> QRectF:
        return _to_qrect(self._thumbnail_rect)

    @Property(QRectF, notify=viewRectChanged)
    def viewRect(self) -> QRectF:
        return _to_qrect(self._view_rect)

    @property
    def thumbnail_rect(self) -> Rect | None:
        return self._thumbnail_rect

    @property
    def view_rect(self) -> Rect | None:
        return self._view_rect

    def on_tiled_image_added(self, image: TiledImage) -> None:
        logger.info("Tiled image added (minimap): %s", image.endpoint)
        url, size = image.get_image_thumbnail(MINIMAP_THUMBNAIL_REQUEST)
        scale, offset = get_thumbnail_scale_and_offset(size.width, size.height)

        self._image = image
        self._thumbnail_url = url
        self._thumbnail_rect = Rect.from_corners(
            offset,
            (size.width * scale + offset[0], size.height * scale + offset[1]),
        )
        self._view_rect = None

        self.visibleChanged.emit()
        self.thumbnailChanged.emit()
        self.viewRectChanged.emit()

    def on_tiled_image_removed(self) -> None:
        logger.info("Tiled image removed (minimap)")
        self._image = None
        self._thumbnail_url = ""
        self._thumbnail_rect = None
        self._view_rect = None

        self.visibleChanged.emit()
        self.thumbnailChanged.emit()
        self.viewRectChanged.emit()

    def update_view_rect(self, camera: OrthographicCamera) -> Rect | None:
        """Map the camera viewport onto the thumbnail, bounded by the minimap."""
        if self._image is None:
            return None
        corners = camera.get_world_viewport_rect()
        if corners is None:
            return self._view_rect

        max_rect = self._image.get_image_max_size_rect()
        scale, offset = get_thumbnail_scale_and_offset(max_rect.width, max_rect.height)
        image_min = self._image.world_to_image(corners[0])
        image_max = self._image.world_to_image(corners[1])

        view_rect = Rect.from_corners(
            (image_min[0] * scale + offset[0], image_min[1] * scale + offset[1]),
            (image_max[0] * scale + offset[0], image_max[1] * scale + offset[1]),
        ).intersect(Rect(0.0, 0.0, THUMBNAIL_AREA, THUMBNAIL_AREA))

        if view_rect != self._view_rect:
            self._view_rect = view_rect
            self.viewRectChanged.emit()
        return view_rect

    def world_position_at(self, u: float, v: float) -> Point | None:
        """World position for a click at normalized thumbnail coordinates.

        ``u`` and ``v`` lie in [-0.5, 0.5] with (0, 0) at the thumbnail centre.
        """
        if self._image is None:
            return None
        max_rect = self._image.get_image_max_size_rect()
        image_pos = (max_rect.max_x * (u + 0.5), max_rect.max_y * (v + 0.5))
        return self._image.image_to_world(image_pos)
