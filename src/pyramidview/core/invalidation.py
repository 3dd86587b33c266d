"""Invalidation counters and the zoom debouncer.

Gestures raise invalidations many times per frame; the tile update and
prune passes each run at most once per frame, only when their counter
moved since they last ran.
"""

from __future__ import annotations

from pyramidview.config import ZOOM_DEBOUNCE_SECS


class ModCounter:
    """Monotonic change counter with a single consumer."""

    def __init__(self) -> None:
        self._count = 0
        self._seen = 0

    @property
    def count(self) -> int:
        return self._count

    def invalidate(self) -> None:
        self._count += 1

    def is_changed(self) -> bool:
        return self._count != self._seen

    def consume(self) -> bool:
        """Return whether the counter moved since the last call, and reset."""
        changed = self.is_changed()
        self._seen = self._count
        return changed


class ZoomDebouncer:
    """Defers the tile update of a zoom gesture until it settles.

    Every zoom re-arms the timer; the update fires once ``delay`` seconds
    have passed since the last zoom.
    """

    def __init__(self, delay: float = ZOOM_DEBOUNCE_SECS) -> None:
        self._delay = delay
        self._last_zoom: float | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def armed(self) -> bool:
        return self._last_zoom is not None

    def arm(self, now: float) -> None:
        self._last_zoom = now

    def cancel(self) -> None:
        self._last_zoom = None

    def poll(self, now: float) -> bool:
        """True exactly once when the delay has elapsed since the last zoom."""
        if self._last_zoom is None:
            return False
        if now - self._last_zoom > self._delay:
            self._last_zoom = None
            return True
        return False
