"""Tests for mouse, touch and keyboard gestures."""

from __future__ import annotations

import pytest

from pyramidview.camera.gestures import (
    GesturePhase,
    Key,
    MouseButton,
    MouseGesture,
    TouchGesture,
    TouchPoint,
    apply_keyboard,
)
from pyramidview.camera.modes import Invalidate
from pyramidview.camera.pan_orbit import OrbitCamera, PanOrbitState3d
from pyramidview.camera.pan_zoom import PanZoomState2d
from pyramidview.camera.viewport import OrthographicCamera

CENTRE = (400.0, 300.0)


@pytest.fixture
def camera():
    return OrthographicCamera(
        translation=(1000.0, -800.0),
        scale=2.0,
        viewport_size=(800.0, 600.0),
        world_image_max_size=(2713.0, 1910.0),
    )


@pytest.fixture
def state(camera):
    return PanZoomState2d(camera.translation, camera.scale)


class TestMouseGesture:
    """Tests for MouseGesture."""

    def test_idle_without_input(self, state, camera, settings):
        mouse = MouseGesture()
        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.NONE
        assert mouse.phase is GesturePhase.IDLE

    def test_drag_pans_from_snapshot(self, state, camera, settings):
        """Motion accumulates across frames relative to the press snapshot."""
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, (100.0, 100.0))
        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.NONE

        mouse.move((110.0, 100.0))
        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.TRANSLATE
        assert camera.translation == (1000.0 - 2.0 * 10.0, -800.0)

        mouse.move((130.0, 100.0))
        mouse.frame(state, camera, settings, CENTRE)
        assert camera.translation == (1000.0 - 2.0 * 30.0, -800.0)

    def test_motion_before_first_frame_counts(self, state, camera, settings):
        """A drag that starts and moves between two frames is not lost."""
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, (100.0, 100.0))
        mouse.move((150.0, 100.0))

        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.TRANSLATE
        assert camera.translation == (1000.0 - 2.0 * 50.0, -800.0)

    def test_releasing_one_of_two_buttons_restarts_motion(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, (0.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.move((10.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.press(MouseButton.SECONDARY)
        mouse.frame(state, camera, settings, CENTRE)

        mouse.release(MouseButton.SECONDARY)
        mouse.move((20.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)

        assert mouse.buttons == frozenset({MouseButton.PRIMARY})
        assert camera.translation == (1000.0 - 2.0 * 20.0, -800.0)

    def test_motion_without_button_ignored(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.move((50.0, 50.0))
        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.NONE
        assert camera.translation == (1000.0, -800.0)

    def test_release_returns_to_idle(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, (0.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.release(MouseButton.PRIMARY)

        assert mouse.phase is GesturePhase.IDLE
        assert mouse.buttons == frozenset()

    def test_new_press_recaptures_snapshot(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, (0.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.move((10.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.release(MouseButton.PRIMARY)

        mouse.press(MouseButton.PRIMARY, (10.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.move((15.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)

        assert camera.translation == (1000.0 - 2.0 * 15.0, -800.0)

    def test_wheel_zooms_when_idle(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.scroll(120.0)

        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.ZOOM
        assert camera.scale == pytest.approx(2.0 * 0.9)

    def test_wheel_direction_only(self, state, camera, settings):
        """Each wheel event counts as one step regardless of its magnitude."""
        mouse = MouseGesture()
        mouse.scroll(-3.0)
        mouse.scroll(-500.0)

        mouse.frame(state, camera, settings, CENTRE)
        assert camera.scale == pytest.approx(2.0 * 1.2)

    def test_wheel_while_dragging_layers_zoom(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.press(MouseButton.PRIMARY, CENTRE)
        mouse.frame(state, camera, settings, CENTRE)

        mouse.move((410.0, 300.0))
        mouse.scroll(1.0)
        result = mouse.frame(state, camera, settings, CENTRE)

        assert result == Invalidate.TRANSLATE | Invalidate.ZOOM
        assert camera.scale == pytest.approx(1.8)

    def test_secondary_button_orbits(self, settings):
        orbit = PanOrbitState3d()
        orbit_camera = OrbitCamera()
        mouse = MouseGesture()
        mouse.press(MouseButton.SECONDARY, (0.0, 0.0))
        mouse.frame(orbit, orbit_camera, settings, CENTRE)

        mouse.move((20.0, 0.0))
        mouse.frame(orbit, orbit_camera, settings, CENTRE)

        assert orbit.yaw == pytest.approx(-20.0 * settings.orbit_sensitivity)

    def test_secondary_button_does_not_pan_planar(self, state, camera, settings):
        mouse = MouseGesture()
        mouse.press(MouseButton.SECONDARY, (0.0, 0.0))
        mouse.frame(state, camera, settings, CENTRE)
        mouse.move((20.0, 20.0))

        assert mouse.frame(state, camera, settings, CENTRE) == Invalidate.NONE


class TestTouchGesture:
    """Tests for TouchGesture."""

    def test_first_contact_fills_slot_zero(self, state, camera, settings):
        touch = TouchGesture()
        touch.press(1, (10.0, 10.0))
        touch.frame(state, camera, settings, CENTRE)

        assert touch.phase is GesturePhase.ACTIVE
        assert touch.history == [TouchPoint(1, (10.0, 10.0)), None]

    def test_second_contact_too_close_ignored(self, state, camera, settings):
        touch = TouchGesture()
        touch.press(1, (10.0, 10.0))
        touch.frame(state, camera, settings, CENTRE)
        touch.press(2, (10.0, 10.005))
        touch.frame(state, camera, settings, CENTRE)

        assert touch.history[1] is None

    def test_pinch_zoom(self, state, camera, settings):
        """Spreading two fingers to twice the distance halves the scale."""
        touch = TouchGesture()
        touch.press(1, (300.0, 300.0))
        touch.press(2, (500.0, 300.0))
        touch.frame(state, camera, settings, CENTRE)

        touch.move(1, (200.0, 300.0))
        touch.move(2, (600.0, 300.0))
        result = touch.frame(state, camera, settings, CENTRE)

        assert result & Invalidate.ZOOM
        assert camera.scale == pytest.approx(2.0 / 4.0)
        assert camera.translation == pytest.approx((1000.0, -800.0))

    def test_two_finger_pan(self, state, camera, settings):
        touch = TouchGesture()
        touch.press(1, (300.0, 300.0))
        touch.press(2, (500.0, 300.0))
        touch.frame(state, camera, settings, CENTRE)

        touch.move(1, (300.0, 320.0))
        touch.move(2, (500.0, 320.0))
        result = touch.frame(state, camera, settings, CENTRE)

        assert result == Invalidate.TRANSLATE
        assert camera.translation == pytest.approx((1000.0, -800.0 + 2.0 * 20.0))

    def test_single_finger_does_not_move_planar_camera(self, state, camera, settings):
        touch = TouchGesture()
        touch.press(1, (300.0, 300.0))
        touch.frame(state, camera, settings, CENTRE)
        touch.move(1, (350.0, 300.0))

        assert touch.frame(state, camera, settings, CENTRE) == Invalidate.NONE
        assert camera.translation == (1000.0, -800.0)

    def test_single_finger_orbits(self, settings):
        orbit = PanOrbitState3d()
        orbit_camera = OrbitCamera()
        touch = TouchGesture()
        touch.press(1, (0.0, 0.0))
        touch.frame(orbit, orbit_camera, settings, CENTRE)

        touch.move(1, (0.0, 30.0))
        touch.frame(orbit, orbit_camera, settings, CENTRE)

        assert orbit.pitch == pytest.approx(30.0 * settings.orbit_sensitivity)

    def test_lifting_a_finger_reseeds(self, state, camera, settings):
        """The remaining contact continues from where it is, without a jump."""
        touch = TouchGesture()
        touch.press(1, (300.0, 300.0))
        touch.press(2, (500.0, 300.0))
        touch.frame(state, camera, settings, CENTRE)
        touch.move(2, (520.0, 300.0))
        touch.frame(state, camera, settings, CENTRE)
        moved = camera.translation

        touch.release(1)
        assert touch.frame(state, camera, settings, CENTRE) == Invalidate.NONE
        assert touch.history == [TouchPoint(2, (520.0, 300.0)), None]
        assert camera.translation == moved

    def test_release_all_returns_to_idle(self, state, camera, settings):
        touch = TouchGesture()
        touch.press(1, (0.0, 0.0))
        touch.frame(state, camera, settings, CENTRE)
        touch.cancel(1)
        touch.frame(state, camera, settings, CENTRE)

        assert touch.phase is GesturePhase.IDLE
        assert touch.history == [None, None]


class TestKeyboard:
    """Tests for apply_keyboard."""

    def test_arrow_pans(self, camera, settings):
        assert apply_keyboard({Key.UP}, set(), camera, settings) == Invalidate.TRANSLATE
        assert camera.translation == (1000.0, -795.0)

    def test_one_key_per_frame(self, camera, settings):
        apply_keyboard({Key.LEFT, Key.DOWN}, set(), camera, settings)
        assert camera.translation == (1000.0, -805.0)

    def test_zoom_keys_on_press_only(self, camera, settings):
        assert apply_keyboard({Key.ZOOM_IN}, {Key.ZOOM_IN}, camera, settings) == Invalidate.ZOOM
        assert camera.scale == pytest.approx(1.8)

        assert apply_keyboard({Key.ZOOM_IN}, set(), camera, settings) == Invalidate.NONE
        assert camera.scale == pytest.approx(1.8)

    def test_zoom_out(self, camera, settings):
        apply_keyboard(set(), {Key.ZOOM_OUT}, camera, settings)
        assert camera.scale == pytest.approx(2.2)

    def test_zoom_clamped(self, camera, settings):
        camera.scale = 0.26
        apply_keyboard(set(), {Key.ZOOM_IN}, camera, settings)
        assert camera.scale == settings.min_camera_zoom_scale
