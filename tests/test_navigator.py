"""Tests for CanvasNavigator -- moving between the canvases of a document."""

from __future__ import annotations

import pytest

from pyramidview.core.iiif import IndexLookupError
from pyramidview.ui.navigator import CanvasNavigator

ENDPOINTS = [
    "https://iiif.example.org/alpha",
    "https://iiif.example.org/beta",
    "https://iiif.example.org/gamma",
]


@pytest.fixture
def navigator(qapp):
    """Create a fresh CanvasNavigator."""
    return CanvasNavigator()


@pytest.fixture
def filled(navigator):
    navigator.set_endpoints(ENDPOINTS)
    return navigator


class TestCanvasNavigatorInitial:
    """Tests for initial state."""

    def test_initial_state(self, navigator):
        """Fresh navigator has currentIndex=-1 and no canvases."""
        assert navigator.currentIndex == -1
        assert navigator.totalCanvases == 0
        assert navigator.hasMultipleCanvases is False
        assert navigator.currentEndpoint == ""

    def test_next_and_previous_on_empty(self, navigator):
        assert navigator.nextCanvas() == ""
        assert navigator.previousCanvas() == ""


class TestCanvasNavigatorEndpoints:
    """Tests for replacing the canvas list."""

    def test_set_endpoints(self, filled):
        assert filled.totalCanvases == 3
        assert filled.currentIndex == 0
        assert filled.currentEndpoint == ENDPOINTS[0]
        assert filled.hasMultipleCanvases is True

    def test_set_endpoints_with_current(self, navigator):
        navigator.set_endpoints(ENDPOINTS, current=2)
        assert navigator.currentIndex == 2

    def test_current_clamped(self, navigator):
        navigator.set_endpoints(ENDPOINTS, current=10)
        assert navigator.currentIndex == 2

    def test_clear(self, filled):
        filled.set_endpoints([])
        assert filled.currentIndex == -1
        assert filled.currentEndpoint == ""

    def test_signals_emitted(self, navigator):
        list_changes = []
        index_changes = []
        navigator.canvasListChanged.connect(lambda: list_changes.append(1))
        navigator.currentIndexChanged.connect(lambda: index_changes.append(1))

        navigator.set_endpoints(ENDPOINTS)

        assert list_changes == [1]
        assert index_changes == [1]


class TestCanvasNavigatorMovement:
    """Tests for next/previous/select."""

    def test_next(self, filled):
        assert filled.nextCanvas() == ENDPOINTS[1]
        assert filled.nextCanvas() == ENDPOINTS[2]
        assert filled.currentIndex == 2

    def test_next_at_end(self, filled):
        filled.set_endpoints(ENDPOINTS, current=2)
        assert filled.nextCanvas() == ""
        assert filled.currentIndex == 2

    def test_previous(self, filled):
        filled.set_endpoints(ENDPOINTS, current=2)
        assert filled.previousCanvas() == ENDPOINTS[1]

    def test_previous_at_start(self, filled):
        assert filled.previousCanvas() == ""
        assert filled.currentIndex == 0

    def test_select(self, filled):
        assert filled.select(1) == ENDPOINTS[1]
        assert filled.currentIndex == 1

    @pytest.mark.parametrize("index", [-1, 3, 99])
    def test_select_out_of_range(self, filled, index):
        with pytest.raises(IndexLookupError, match=rf"canvas index {index} out of range \(0\.\.2\)"):
            filled.select(index)
        assert filled.currentIndex == 0

    def test_select_on_empty(self, navigator):
        with pytest.raises(IndexLookupError, match=r"out of range \(empty\)"):
            navigator.select(0)
