"""Gesture state machines turning raw pointer, touch and key input into camera updates.

Each gesture captures an initial camera snapshot when it starts (first
button press or first touch contact) and, on every frame after that,
applies the delta accumulated since the snapshot rather than the change
since the previous frame. Releasing every contact returns to idle; a
contact appearing or disappearing mid-gesture recaptures the snapshot.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pyramidview.camera.base import CameraState, GestureDelta
from pyramidview.camera.modes import CameraMode, Invalidate, modes, select_mouse_modes
from pyramidview.camera.pan_zoom import clamp_scale
from pyramidview.camera.viewport import OrthographicCamera
from pyramidview.config import (
    KEYBOARD_PAN_STEP,
    KEYBOARD_ZOOM_IN,
    KEYBOARD_ZOOM_OUT,
    WHEEL_ZOOM_STEP,
    ViewerSettings,
)
from pyramidview.core.types import Point

logger = logging.getLogger(__name__)

#: Min distance between two touches for the second one to count
MIN_TOUCH_SEPARATION = 0.01

#: Floor for the squared pinch distance
MIN_PINCH_DISTANCE_SQUARED = 0.01


class GesturePhase(Enum):
    IDLE = "idle"
    ACTIVE = "active"


class MouseButton(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Key(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"


class MouseGesture:
    """Mouse drag and wheel gesture.

    Events are recorded as they arrive; :meth:`frame` applies them once
    per display frame.
    """

    def __init__(self) -> None:
        self._buttons: set[MouseButton] = set()
        self._phase = GesturePhase.IDLE
        self._initial: Any = None
        self._needs_snapshot = False
        self._cursor_pos: Point = (0.0, 0.0)
        self._motion: Point = (0.0, 0.0)
        self._zoom = 1.0
        self._wheel = 0
        self._moved = False

    @property
    def phase(self) -> GesturePhase:
        return self._phase

    @property
    def buttons(self) -> frozenset[MouseButton]:
        return frozenset(self._buttons)

    @property
    def cursor_pos(self) -> Point:
        return self._cursor_pos

    def press(self, button: MouseButton, pos: Point | None = None) -> None:
        if pos is not None:
            self._cursor_pos = pos
        if button in self._buttons:
            return
        self._buttons.add(button)
        self._phase = GesturePhase.ACTIVE
        self._restart()

    def release(self, button: MouseButton) -> None:
        if button not in self._buttons:
            return
        self._buttons.discard(button)
        if self._buttons:
            self._restart()
        else:
            self._phase = GesturePhase.IDLE
            self._initial = None
            self._needs_snapshot = False

    def _restart(self) -> None:
        # Motion from here on counts against the snapshot taken next frame
        self._needs_snapshot = True
        self._motion = (0.0, 0.0)
        self._zoom = 1.0

    def move(self, pos: Point, delta: Point | None = None) -> None:
        """Record cursor motion; ``delta`` defaults to the change in position."""
        if delta is None:
            delta = (pos[0] - self._cursor_pos[0], pos[1] - self._cursor_pos[1])
        self._cursor_pos = pos
        if self._phase is GesturePhase.ACTIVE:
            self._motion = (self._motion[0] + delta[0], self._motion[1] + delta[1])
            self._moved = True

    def scroll(self, amount: float) -> None:
        """Record a wheel event; only its direction matters."""
        if amount > 0:
            self._wheel += 1
        elif amount < 0:
            self._wheel -= 1

    def frame(
        self,
        state: CameraState,
        camera: Any,
        settings: ViewerSettings,
        viewport_centre: Point,
    ) -> Invalidate:
        """Apply the pending input to ``state`` and ``camera``."""
        wheel, self._wheel = self._wheel, 0
        moved, self._moved = self._moved, False
        step_zoom = 1.0 - wheel * WHEEL_ZOOM_STEP

        if self._phase is GesturePhase.IDLE:
            if wheel == 0:
                return Invalidate.NONE
            delta = GestureDelta(self._cursor_pos, viewport_centre, step_zoom, (0.0, 0.0))
            initial = state.get_initial_state(camera)
            return state.apply(modes(CameraMode.ZOOM), initial, delta, settings, camera)

        if self._needs_snapshot:
            self._initial = state.get_initial_state(camera)
            self._needs_snapshot = False

        if wheel == 0 and not moved:
            return Invalidate.NONE

        self._zoom *= step_zoom
        camera_modes = select_mouse_modes(
            MouseButton.PRIMARY in self._buttons,
            MouseButton.SECONDARY in self._buttons,
            self._zoom != 1.0,
        )
        delta = GestureDelta(self._cursor_pos, viewport_centre, self._zoom, self._motion)
        return state.apply(camera_modes, self._initial, delta, settings, camera)


@dataclass(frozen=True)
class TouchPoint:
    id: int
    position: Point


def _centre_and_distance_squared(a: Point, b: Point) -> tuple[Point, float]:
    centre = ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
    distance_squared = (b[0] - a[0]) ** 2 + (b[1] - a[1]) ** 2
    return centre, distance_squared


class TouchGesture:
    """One-finger orbit and two-finger pan/pinch-zoom gesture.

    Up to two contacts are tracked in a two-slot history holding where
    each contact started.
    """

    def __init__(self) -> None:
        self._active: dict[int, Point] = {}
        self._history: list[TouchPoint | None] = [None, None]
        self._just_pressed: list[TouchPoint] = []
        self._released = False
        self._initial: Any = None
        self._needs_snapshot = False
        self._changed = False

    @property
    def phase(self) -> GesturePhase:
        if self._active:
            return GesturePhase.ACTIVE
        return GesturePhase.IDLE

    @property
    def history(self) -> list[TouchPoint | None]:
        return list(self._history)

    def press(self, touch_id: int, pos: Point) -> None:
        self._active[touch_id] = pos
        self._just_pressed.append(TouchPoint(touch_id, pos))
        self._changed = True

    def move(self, touch_id: int, pos: Point) -> None:
        if touch_id in self._active and self._active[touch_id] != pos:
            self._active[touch_id] = pos
            self._changed = True

    def release(self, touch_id: int) -> None:
        if self._active.pop(touch_id, None) is not None:
            self._released = True
            self._changed = True

    def cancel(self, touch_id: int) -> None:
        self.release(touch_id)

    def _record_presses(self) -> None:
        for pressed in self._just_pressed:
            if pressed.id not in self._active:
                continue
            filled = [slot for slot in self._history if slot is not None]

            if not filled:
                self._history[0] = pressed
                self._needs_snapshot = True
            elif len(filled) == 1:
                held_slot = 0 if self._history[0] is not None else 1
                held = self._history[held_slot]
                if held.id != pressed.id and math.dist(held.position, pressed.position) > MIN_TOUCH_SEPARATION:
                    self._history[1 - held_slot] = pressed
                    self._needs_snapshot = True
        self._just_pressed.clear()

    def frame(
        self,
        state: CameraState,
        camera: Any,
        settings: ViewerSettings,
        viewport_centre: Point,
    ) -> Invalidate:
        """Apply the pending touch input to ``state`` and ``camera``."""
        if self._released:
            # Restart from the contacts still down, at their current positions.
            logger.debug("Touch released, %d contacts remain", len(self._active))
            self._history = [None, None]
            for slot, (touch_id, pos) in enumerate(list(self._active.items())[:2]):
                self._history[slot] = TouchPoint(touch_id, pos)
            self._needs_snapshot = bool(self._active)
            self._released = False

        if not self._active:
            self._just_pressed.clear()
            self._initial = None
            self._changed = False
            return Invalidate.NONE

        self._record_presses()

        if self._needs_snapshot:
            self._initial = state.get_initial_state(camera)
            self._needs_snapshot = False

        changed, self._changed = self._changed, False
        if not changed or self._initial is None:
            return Invalidate.NONE

        tracked = [slot for slot in self._history if slot is not None]

        if len(self._active) == 2 and len(tracked) == 2:
            current = [self._active.get(t.id, t.position) for t in tracked]
            current_centre, current_distance = _centre_and_distance_squared(*current)
            initial_centre, initial_distance = _centre_and_distance_squared(
                tracked[0].position, tracked[1].position
            )
            delta = GestureDelta(
                current_centre,
                viewport_centre,
                initial_distance / max(current_distance, MIN_PINCH_DISTANCE_SQUARED),
                (current_centre[0] - initial_centre[0], current_centre[1] - initial_centre[1]),
            )
            camera_modes = modes(CameraMode.PAN, CameraMode.ZOOM)
            return state.apply(camera_modes, self._initial, delta, settings, camera)

        if len(self._active) == 1 and tracked:
            start = tracked[0]
            current_pos = self._active.get(start.id, next(iter(self._active.values())))
            delta = GestureDelta(
                current_pos,
                viewport_centre,
                1.0,
                (current_pos[0] - start.position[0], current_pos[1] - start.position[1]),
            )
            return state.apply(modes(CameraMode.ORBIT), self._initial, delta, settings, camera)

        return Invalidate.NONE


def apply_keyboard(
    pressed: set[Key] | frozenset[Key],
    just_pressed: set[Key] | frozenset[Key],
    camera: OrthographicCamera,
    settings: ViewerSettings,
) -> Invalidate:
    """Step the planar camera for held arrow keys or a zoom key press.

    One key is handled per frame, in the order up, down, left, right,
    zoom in, zoom out.
    """
    dx = dy = 0.0
    zoom = 1.0

    if Key.UP in pressed:
        dy = KEYBOARD_PAN_STEP
    elif Key.DOWN in pressed:
        dy = -KEYBOARD_PAN_STEP
    elif Key.LEFT in pressed:
        dx = KEYBOARD_PAN_STEP
    elif Key.RIGHT in pressed:
        dx = -KEYBOARD_PAN_STEP
    elif Key.ZOOM_IN in just_pressed:
        zoom = KEYBOARD_ZOOM_IN
    elif Key.ZOOM_OUT in just_pressed:
        zoom = KEYBOARD_ZOOM_OUT
    else:
        return Invalidate.NONE

    camera.translation = (camera.translation[0] + dx, camera.translation[1] + dy)
    camera.scale = clamp_scale(camera.scale * zoom, settings, camera.world_image_max_size)

    if zoom != 1.0:
        return Invalidate.ZOOM
    return Invalidate.TRANSLATE
