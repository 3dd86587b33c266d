"""Base interface for camera gesture states."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pyramidview.camera.modes import CameraMode, Invalidate
from pyramidview.config import ViewerSettings
from pyramidview.core.types import Point


@dataclass(frozen=True)
class GestureDelta:
    """Change of a gesture relative to its initial snapshot.

    Attributes:
        current_pos: Cursor or pinch centroid in viewport pixels
        viewport_centre: Centre of the viewport in viewport pixels
        delta_zoom: Multiplicative zoom change (1.0 = none)
        delta_move: Pointer motion in viewport pixels (y grows downward)
    """

    current_pos: Point = (0.0, 0.0)
    viewport_centre: Point = (0.0, 0.0)
    delta_zoom: float = 1.0
    delta_move: Point = (0.0, 0.0)

    @property
    def has_move(self) -> bool:
        return self.delta_move != (0.0, 0.0)


CameraT = TypeVar("CameraT")


class CameraState(ABC, Generic[CameraT]):
    """State driven by gestures and applied to a camera.

    A gesture captures an initial snapshot when it starts, then every
    update applies the delta accumulated since that snapshot.
    """

    @abstractmethod
    def get_initial_state(self, camera: CameraT) -> Any:
        """Snapshot used as the starting point of a gesture."""
        ...

    @abstractmethod
    def apply(
        self,
        camera_modes: frozenset[CameraMode],
        initial_state: Any,
        delta: GestureDelta,
        settings: ViewerSettings,
        camera: CameraT,
    ) -> Invalidate:
        """Apply the delta on top of ``initial_state`` and update ``camera``.

        Returns:
            Flags telling whether tiles need recomputing
        """
        ...
