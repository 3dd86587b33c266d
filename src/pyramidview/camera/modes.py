"""Camera modes and invalidation flags."""

from __future__ import annotations

from enum import Enum, Flag, auto


class CameraMode(Enum):
    PAN = "pan"
    ZOOM = "zoom"
    ORBIT = "orbit"


#: Mode combinations a gesture may produce. Pan and Zoom coexist;
#: Orbit excludes both.
ALLOWED_MODE_SETS: frozenset[frozenset[CameraMode]] = frozenset({
    frozenset(),
    frozenset({CameraMode.PAN}),
    frozenset({CameraMode.ZOOM}),
    frozenset({CameraMode.PAN, CameraMode.ZOOM}),
    frozenset({CameraMode.ORBIT}),
})


def modes(*members: CameraMode) -> frozenset[CameraMode]:
    """Build a validated mode set."""
    result = frozenset(members)
    if result not in ALLOWED_MODE_SETS:
        names = ", ".join(sorted(m.name for m in result))
        raise ValueError(f"invalid camera mode combination: {names}")
    return result


def select_mouse_modes(
    primary_held: bool, secondary_held: bool, scrolling: bool
) -> frozenset[CameraMode]:
    """Pick the camera modes for the current mouse button state.

    Primary alone pans (and zooms too when the wheel moves), secondary
    alone orbits. With no button or both buttons held the wheel zooms.
    """
    if primary_held and not secondary_held:
        if scrolling:
            return modes(CameraMode.PAN, CameraMode.ZOOM)
        return modes(CameraMode.PAN)
    if secondary_held and not primary_held:
        return modes(CameraMode.ORBIT)
    return modes(CameraMode.ZOOM)


class Invalidate(Flag):
    """What a camera update changed, consumed once per frame."""

    NONE = 0
    TRANSLATE = auto()
    ZOOM = auto()
