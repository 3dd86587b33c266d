"""Pan/orbit/zoom state of the 3D camera used for model assets."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from pyramidview.camera.base import CameraState, GestureDelta
from pyramidview.camera.modes import CameraMode, Invalidate
from pyramidview.config import ViewerSettings


def wrap_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    return math.pi - (math.pi - angle) % math.tau


def euler_yxz(yaw: float, pitch: float) -> np.ndarray:
    """Rotation matrix for yaw around Y followed by pitch around X."""
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cp, -sp], [0.0, sp, cp]])
    return rot_y @ rot_x


@dataclass(eq=False)
class OrbitCamera:
    """Perspective camera transform: rotation matrix plus position."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def right(self) -> np.ndarray:
        return self.rotation @ np.array([1.0, 0.0, 0.0])

    def up(self) -> np.ndarray:
        return self.rotation @ np.array([0.0, 1.0, 0.0])

    def back(self) -> np.ndarray:
        return self.rotation @ np.array([0.0, 0.0, 1.0])


@dataclass(eq=False)
class PanOrbitState3d(CameraState[OrbitCamera]):
    """Spherical camera parameters around a centre point.

    Attributes:
        center: Point the camera orbits around
        radius: Distance from the centre
        pitch: Rotation around the camera X axis, in (-pi, pi]
        yaw: Rotation around the world Y axis, in (-pi, pi]
        is_added: True until the camera transform was computed once
    """

    center: np.ndarray = field(default_factory=lambda: np.zeros(3))
    radius: float = 1.0
    pitch: float = 0.0
    yaw: float = 0.0
    is_added: bool = True

    def get_initial_state(self, camera: OrbitCamera) -> PanOrbitState3d:
        return PanOrbitState3d(
            center=self.center.copy(),
            radius=self.radius,
            pitch=self.pitch,
            yaw=self.yaw,
            is_added=self.is_added,
        )

    def apply(
        self,
        camera_modes: frozenset[CameraMode],
        initial_state: PanOrbitState3d,
        delta: GestureDelta,
        settings: ViewerSettings,
        camera: OrbitCamera,
    ) -> Invalidate:
        any_change = False
        move_x, move_y = delta.delta_move

        if CameraMode.ORBIT in camera_modes and delta.has_move:
            any_change = True
            # Upside down: reverse horizontal orbiting so drags feel the same
            upside_down = (
                initial_state.pitch < -math.pi / 2 or initial_state.pitch > math.pi / 2
            )
            yaw_move = move_x if upside_down else -move_x

            self.yaw = wrap_angle(initial_state.yaw + yaw_move * settings.orbit_sensitivity)
            self.pitch = wrap_angle(initial_state.pitch + move_y * settings.orbit_sensitivity)

        if CameraMode.ZOOM in camera_modes and delta.delta_zoom != 1.0:
            any_change = True
            self.radius = initial_state.radius * delta.delta_zoom

        if CameraMode.PAN in camera_modes and delta.has_move:
            any_change = True
            step = settings.pan_sensitivity * self.radius
            self.center = (
                initial_state.center
                + camera.right() * (-move_x) * step
                + camera.up() * move_y * step
            )

        if any_change or self.is_added:
            self.update_camera(camera)

        # 3D assets are not tiled.
        return Invalidate.NONE

    def update_camera(self, camera: OrbitCamera) -> None:
        """Recompute the camera transform from the spherical parameters."""
        camera.rotation = euler_yxz(self.yaw, self.pitch)
        camera.translation = self.center + camera.back() * self.radius
        self.is_added = False
