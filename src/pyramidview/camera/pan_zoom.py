"""Pan/zoom state of the planar camera."""

from __future__ import annotations

from dataclasses import dataclass

from pyramidview.camera.base import CameraState, GestureDelta
from pyramidview.camera.modes import CameraMode, Invalidate
from pyramidview.camera.viewport import OrthographicCamera
from pyramidview.config import ViewerSettings
from pyramidview.core.types import Point


def clamp_scale(
    scale: float, settings: ViewerSettings, world_image_max_size: Point
) -> float:
    """Clamp a camera scale between max zoom-in and max zoom-out.

    Zooming out stops once the image would be smaller than
    ``settings.min_image_size`` on screen. Without an image only the
    zoom-in limit applies.
    """
    scale = max(scale, settings.min_camera_zoom_scale)
    longest = max(world_image_max_size)
    if longest > 0:
        max_camera_zoom_scale = longest / settings.min_image_size
        scale = min(scale, max_camera_zoom_scale)
    return scale


@dataclass
class PanZoomState2d(CameraState[OrthographicCamera]):
    """Translation and scale of the planar camera."""

    translation: Point = (0.0, 0.0)
    scale: float = 1.0

    def get_initial_state(self, camera: OrthographicCamera) -> PanZoomState2d:
        return PanZoomState2d(translation=camera.translation, scale=camera.scale)

    def apply(
        self,
        camera_modes: frozenset[CameraMode],
        initial_state: PanZoomState2d,
        delta: GestureDelta,
        settings: ViewerSettings,
        camera: OrthographicCamera,
    ) -> Invalidate:
        if CameraMode.PAN not in camera_modes and CameraMode.ZOOM not in camera_modes:
            return Invalidate.NONE

        delta_zoom = delta.delta_zoom if CameraMode.ZOOM in camera_modes else 1.0
        scale = clamp_scale(
            initial_state.scale * delta_zoom, settings, camera.world_image_max_size
        )
        delta_scale = initial_state.scale - scale

        # Keep the world point under the cursor fixed while zooming.
        offset_x = delta.current_pos[0] - delta.viewport_centre[0]
        offset_y = -(delta.current_pos[1] - delta.viewport_centre[1])
        zoom_move = (offset_x * delta_scale, offset_y * delta_scale)

        if CameraMode.PAN in camera_modes:
            move = (delta.delta_move[0], -delta.delta_move[1])
        else:
            move = (0.0, 0.0)
        panned = move != (0.0, 0.0)

        if not panned and delta_scale == 0.0:
            return Invalidate.NONE

        self.scale = scale
        self.translation = (
            initial_state.translation[0] - scale * move[0] + zoom_move[0],
            initial_state.translation[1] - scale * move[1] + zoom_move[1],
        )
        camera.scale = self.scale
        camera.translation = self.translation

        invalidate = Invalidate.NONE
        if panned:
            invalidate |= Invalidate.TRANSLATE
        if delta_scale != 0.0:
            invalidate |= Invalidate.ZOOM
        return invalidate
