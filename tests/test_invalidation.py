"""Tests for change counters and the zoom debouncer."""

from __future__ import annotations

from pyramidview.core.invalidation import ModCounter, ZoomDebouncer


class TestModCounter:
    """Tests for ModCounter."""

    def test_initially_unchanged(self):
        assert ModCounter().consume() is False

    def test_many_invalidations_consumed_once(self):
        counter = ModCounter()
        for _ in range(5):
            counter.invalidate()

        assert counter.is_changed()
        assert counter.consume() is True
        assert counter.consume() is False
        assert counter.count == 5

    def test_invalidate_after_consume(self):
        counter = ModCounter()
        counter.invalidate()
        counter.consume()
        counter.invalidate()
        assert counter.consume() is True


class TestZoomDebouncer:
    """Tests for ZoomDebouncer."""

    def test_idle_never_fires(self):
        assert ZoomDebouncer().poll(100.0) is False

    def test_fires_after_delay(self):
        debouncer = ZoomDebouncer(0.25)
        debouncer.arm(1.0)

        assert debouncer.poll(1.2) is False
        assert debouncer.poll(1.3) is True
        assert debouncer.armed is False

    def test_fires_once(self):
        debouncer = ZoomDebouncer(0.25)
        debouncer.arm(0.0)
        assert debouncer.poll(1.0) is True
        assert debouncer.poll(2.0) is False

    def test_rearm_extends(self):
        """Each zoom restarts the quiet period."""
        debouncer = ZoomDebouncer(0.25)
        debouncer.arm(0.0)
        debouncer.arm(0.2)

        assert debouncer.poll(0.4) is False
        assert debouncer.poll(0.5) is True

    def test_exact_delay_does_not_fire(self):
        debouncer = ZoomDebouncer(0.5)
        debouncer.arm(1.0)
        assert debouncer.poll(1.5) is False

    def test_cancel(self):
        debouncer = ZoomDebouncer(0.25)
        debouncer.arm(0.0)
        debouncer.cancel()
        assert debouncer.poll(1.0) is False
