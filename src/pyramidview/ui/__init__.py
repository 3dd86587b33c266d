"""Qt-facing viewer components."""

from .minimap import Minimap
from .navigator import CanvasNavigator
from .viewer import ViewerController, ViewMode

__all__ = ["CanvasNavigator", "Minimap", "ViewerController", "ViewMode"]
