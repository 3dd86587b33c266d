"""Canvas navigation for multi-image documents."""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal, Slot, Property

from pyramidview.core.iiif import IndexLookupError


class CanvasNavigator(QObject):
    """Manages navigation between the canvases of one document.

    Each canvas is identified by the image service endpoint it shows.
    """

    canvasListChanged = Signal()
    currentIndexChanged = Signal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._endpoints: list[str] = []
        self._current_index: int = -1

    @Property(int, notify=currentIndexChanged)
    def currentIndex(self) -> int:
        return self._current_index

    @Property(int, notify=canvasListChanged)
    def totalCanvases(self) -> int:
        return len(self._endpoints)

    @Property(bool, notify=canvasListChanged)
    def hasMultipleCanvases(self) -> bool:
        return len(self._endpoints) > 1

    @Property(str, notify=currentIndexChanged)
    def currentEndpoint(self) -> str:
        if 0 <= self._current_index < len(self._endpoints):
            return self._endpoints[self._current_index]
        return ""

    @property
    def endpoints(self) -> list[str]:
        return list(self._endpoints)

    def set_endpoints(self, endpoints: list[str], current: int = 0) -> None:
        """Replace the canvas list, selecting ``current`` (or none if empty)."""
        self._endpoints = list(endpoints)
        if not self._endpoints:
            self._current_index = -1
        else:
            self._current_index = min(max(current, 0), len(self._endpoints) - 1)

        self.canvasListChanged.emit()
        self.currentIndexChanged.emit()

    @Slot(int, result=str)
    def select(self, index: int) -> str:
        """Make canvas ``index`` current and return its endpoint.

        Raises:
            IndexLookupError: If ``index`` does not name a canvas
        """
        if not 0 <= index < len(self._endpoints):
            raise IndexLookupError("canvas", index, len(self._endpoints))
        if index != self._current_index:
            self._current_index = index
            self.currentIndexChanged.emit()
        return self._endpoints[index]

    @Slot(result=str)
    def nextCanvas(self) -> str:
        if not self._endpoints:
            return ""
        if self._current_index < len(self._endpoints) - 1:
            self._current_index += 1
            self.currentIndexChanged.emit()
            return self._endpoints[self._current_index]
        return ""

    @Slot(result=str)
    def previousCanvas(self) -> str:
        if not self._endpoints:
            return ""
        if self._current_index > 0:
            self._current_index -= 1
            self.currentIndexChanged.emit()
            return self._endpoints[self._current_index]
        return ""
