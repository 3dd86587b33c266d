"""Centralized configuration for pyramidview.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    PYRAMIDVIEW_MAX_CACHE_ITEMS: Tile cache budget in tiles (default: 4096)
    PYRAMIDVIEW_THUMBNAIL_SIZE: Side panel thumbnail size in pixels (default: 64)
    PYRAMIDVIEW_MIN_CAMERA_ZOOM_SCALE: Smallest camera scale, i.e. max zoom-in (default: 0.25)
    PYRAMIDVIEW_MIN_IMAGE_SIZE: Smallest on-screen image size when zooming out (default: 256)
    PYRAMIDVIEW_PAN_SENSITIVITY: Orbit camera world units per pixel (default: 0.002)
    PYRAMIDVIEW_ORBIT_SENSITIVITY: Orbit camera degrees per pixel (default: 0.5)
    PYRAMIDVIEW_HTTP_TIMEOUT: Timeout for description downloads in seconds (default: 30)
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Get a float from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(
                "Invalid number for %s: %r, using default %g", name, value, default
            )
    return default


# =============================================================================
# Tile Cache Configuration
# =============================================================================

#: Max number of tiles kept in the tile cache before pruning kicks in
MAX_CACHE_ITEMS: int = _get_env_int("PYRAMIDVIEW_MAX_CACHE_ITEMS", 4096)

#: Tile size assumed when the image description does not declare one
DEFAULT_TILE_SIZE: int = 512

#: Tiles thinner than this (in image pixels) are rounding leftovers at the edge
DEGENERATE_TILE_PX: float = 0.5


# =============================================================================
# Camera Configuration
# =============================================================================

#: Min camera zoom scale at full image size (1/4 = max 4x magnification)
MIN_CAMERA_ZOOM_SCALE: float = _get_env_float("PYRAMIDVIEW_MIN_CAMERA_ZOOM_SCALE", 0.25)

#: Min on-screen image size allowed when zooming out
MIN_IMAGE_SIZE: float = _get_env_float("PYRAMIDVIEW_MIN_IMAGE_SIZE", 256.0)

#: Orbit camera pan, world units per pixel of pointer motion
PAN_SENSITIVITY: float = _get_env_float("PYRAMIDVIEW_PAN_SENSITIVITY", 0.002)

#: Orbit camera rotation, radians per pixel of pointer motion
ORBIT_SENSITIVITY: float = math.radians(
    _get_env_float("PYRAMIDVIEW_ORBIT_SENSITIVITY", 0.5)
)

#: Delay before a zoom gesture triggers a tile update
ZOOM_DEBOUNCE_SECS: float = 0.25

#: Distance in screen pixels of the image that always stays in the viewport
VIEWPORT_MARGIN_PX: float = 8.0

#: Zoom change per mouse wheel tick
WHEEL_ZOOM_STEP: float = 0.1

#: Keyboard pan step in world units per frame
KEYBOARD_PAN_STEP: float = 5.0

#: Keyboard zoom factors
KEYBOARD_ZOOM_IN: float = 0.9
KEYBOARD_ZOOM_OUT: float = 1.1


# =============================================================================
# UI Configuration
# =============================================================================

#: Thumbnail size in the side panel
THUMBNAIL_SIZE: int = _get_env_int("PYRAMIDVIEW_THUMBNAIL_SIZE", 64)

#: Minimap outer size in pixels
MINIMAP_SIZE: float = 200.0

#: Minimap border width in pixels
MINIMAP_BORDER: float = 2.0

#: Thumbnail size requested from the image server for the minimap
MINIMAP_THUMBNAIL_REQUEST: int = 256


# =============================================================================
# Network Configuration
# =============================================================================

#: Timeout for manifest and image description downloads
HTTP_TIMEOUT_SECS: float = _get_env_float("PYRAMIDVIEW_HTTP_TIMEOUT", 30.0)


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global MAX_CACHE_ITEMS, MIN_CAMERA_ZOOM_SCALE, MIN_IMAGE_SIZE, THUMBNAIL_SIZE

    if MAX_CACHE_ITEMS < 1:
        logger.warning("MAX_CACHE_ITEMS=%d is too low, clamping to 1", MAX_CACHE_ITEMS)
        MAX_CACHE_ITEMS = 1

    if MIN_CAMERA_ZOOM_SCALE <= 0:
        logger.warning(
            "MIN_CAMERA_ZOOM_SCALE=%g must be positive, using 0.25", MIN_CAMERA_ZOOM_SCALE
        )
        MIN_CAMERA_ZOOM_SCALE = 0.25

    if MIN_IMAGE_SIZE < 1:
        logger.warning("MIN_IMAGE_SIZE=%g is too low, clamping to 1", MIN_IMAGE_SIZE)
        MIN_IMAGE_SIZE = 1.0

    if THUMBNAIL_SIZE < 1:
        logger.warning("THUMBNAIL_SIZE=%d is too low, clamping to 1", THUMBNAIL_SIZE)
        THUMBNAIL_SIZE = 1


_validate_config()


@dataclass(frozen=True)
class ViewerSettings:
    """Immutable settings passed to the cache, camera and viewer.

    Attributes:
        max_cache_items: Tile cache budget
        thumbnail_size: Side panel thumbnail size
        min_camera_zoom_scale: Smallest camera scale (max zoom-in)
        min_image_size: Smallest on-screen image size (limits zoom-out)
        pan_sensitivity: Orbit camera world units per pixel
        orbit_sensitivity: Orbit camera radians per pixel
    """

    max_cache_items: int = 4096
    thumbnail_size: int = 64
    min_camera_zoom_scale: float = 0.25
    min_image_size: float = 256.0
    pan_sensitivity: float = 0.002
    orbit_sensitivity: float = math.radians(0.5)

    @classmethod
    def from_config(cls) -> ViewerSettings:
        """Build settings from the module-level (environment-aware) values."""
        return cls(
            max_cache_items=MAX_CACHE_ITEMS,
            thumbnail_size=THUMBNAIL_SIZE,
            min_camera_zoom_scale=MIN_CAMERA_ZOOM_SCALE,
            min_image_size=MIN_IMAGE_SIZE,
            pan_sensitivity=PAN_SENSITIVITY,
            orbit_sensitivity=ORBIT_SENSITIVITY,
        )
