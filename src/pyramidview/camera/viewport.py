"""Orthographic camera of the planar (image) view."""

from __future__ import annotations

from dataclasses import dataclass

from pyramidview.core.types import Point, Rect


@dataclass
class OrthographicCamera:
    """Planar camera looking at the image.

    Attributes:
        translation: World position of the viewport centre
        scale: World units per viewport pixel (larger = zoomed out)
        viewport_size: Logical viewport size in pixels
        world_image_max_size: Size of the current image in world units
    """

    translation: Point = (0.0, 0.0)
    scale: float = 1.0
    viewport_size: Point = (0.0, 0.0)
    world_image_max_size: Point = (0.0, 0.0)

    @property
    def viewport_centre(self) -> Point:
        return (self.viewport_size[0] / 2.0, self.viewport_size[1] / 2.0)

    @property
    def has_viewport(self) -> bool:
        return self.viewport_size[0] > 0 and self.viewport_size[1] > 0

    def viewport_to_world(self, p: Point) -> Point:
        """Convert a viewport pixel (origin top-left, y down) to world space."""
        cx, cy = self.viewport_centre
        return (
            self.translation[0] + (p[0] - cx) * self.scale,
            self.translation[1] - (p[1] - cy) * self.scale,
        )

    def world_to_viewport(self, p: Point) -> Point:
        cx, cy = self.viewport_centre
        return (
            (p[0] - self.translation[0]) / self.scale + cx,
            cy - (p[1] - self.translation[1]) / self.scale,
        )

    def get_world_viewport_rect(self) -> tuple[Point, Point] | None:
        """Viewport corners in world space, or None before the viewport is known."""
        if not self.has_viewport:
            return None
        return (
            self.viewport_to_world((0.0, 0.0)),
            self.viewport_to_world(self.viewport_size),
        )


def bound_translation(
    camera: OrthographicCamera, world_image_rect: Rect, margin_px: float
) -> Point:
    """Clamp the camera translation so part of the image stays in view.

    The viewport centre is bounded by the image rectangle grown by half the
    viewport and shrunk by a margin of ``margin_px`` screen pixels, so at
    least that much of the image remains visible.
    """
    corners = camera.get_world_viewport_rect()
    if corners is None:
        return camera.translation

    viewport_rect = Rect.from_corners(*corners)
    margin = abs(
        camera.viewport_to_world((margin_px, margin_px))[0]
        - camera.viewport_to_world((0.0, 0.0))[0]
    )
    half_w, half_h = viewport_rect.half_size

    min_x = world_image_rect.min_x + margin - half_w
    min_y = world_image_rect.min_y + margin - half_h
    max_x = world_image_rect.max_x - margin + half_w
    max_y = world_image_rect.max_y - margin + half_h

    x = min(max(camera.translation[0], min_x), max_x)
    y = min(max(camera.translation[1], min_y), max_y)
    return (x, y)
