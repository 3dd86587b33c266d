"""Camera gesture states and input handling."""

from .base import CameraState, GestureDelta
from .gestures import GesturePhase, Key, MouseButton, MouseGesture, TouchGesture, apply_keyboard
from .modes import CameraMode, Invalidate
from .pan_orbit import OrbitCamera, PanOrbitState3d
from .pan_zoom import PanZoomState2d
from .viewport import OrthographicCamera, bound_translation

__all__ = [
    "CameraState",
    "GestureDelta",
    "GesturePhase",
    "Key",
    "MouseButton",
    "MouseGesture",
    "TouchGesture",
    "apply_keyboard",
    "CameraMode",
    "Invalidate",
    "OrbitCamera",
    "PanOrbitState3d",
    "PanZoomState2d",
    "OrthographicCamera",
    "bound_translation",
]
