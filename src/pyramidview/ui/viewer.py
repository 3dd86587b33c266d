"""Viewer controller: owns the tiled image, camera, gestures and tile cache.

The rendering layer drives :meth:`ViewerController.frame` once per
display frame and forwards raw input through the input slots. Everything
runs on the GUI thread; only description downloads happen on background
threads and report back through download channels.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from PySide6.QtCore import QObject, Qt, Signal, Slot, Property

from pyramidview.camera.gestures import (
    Key,
    MouseButton,
    MouseGesture,
    TouchGesture,
    apply_keyboard,
)
from pyramidview.camera.modes import Invalidate
from pyramidview.camera.pan_orbit import OrbitCamera, PanOrbitState3d
from pyramidview.camera.pan_zoom import PanZoomState2d
from pyramidview.camera.viewport import OrthographicCamera, bound_translation
from pyramidview.config import VIEWPORT_MARGIN_PX, ViewerSettings
from pyramidview.core.download import (
    DownloadChannel,
    DownloadDone,
    DownloadFailed,
    fetch_bytes,
    start_download,
)
from pyramidview.core.iiif import IiifError, image_info_url
from pyramidview.core.invalidation import ModCounter, ZoomDebouncer
from pyramidview.core.tile_cache import AssetLoader, TileCache
from pyramidview.core.tiled_image import TiledImage
from pyramidview.core.types import Point, RequiredTiles, Tile
from pyramidview.ui.minimap import Minimap
from pyramidview.ui.navigator import CanvasNavigator

logger = logging.getLogger(__name__)

_MOUSE_BUTTONS = {
    Qt.MouseButton.LeftButton: MouseButton.PRIMARY,
    Qt.MouseButton.RightButton: MouseButton.SECONDARY,
}

_KEYS = {
    Qt.Key.Key_Up: Key.UP,
    Qt.Key.Key_Down: Key.DOWN,
    Qt.Key.Key_Left: Key.LEFT,
    Qt.Key.Key_Right: Key.RIGHT,
    Qt.Key.Key_Z: Key.ZOOM_IN,
    Qt.Key.Key_X: Key.ZOOM_OUT,
}


class ViewMode(Enum):
    PLANAR = "planar"
    ORBIT = "orbit"


class ViewerController(QObject):
    """Per-frame update pipeline of the deep-zoom viewer.

    Args:
        loader: Asset loader fetching and decoding tile payloads
        settings: Viewer settings (defaults to the environment-aware config)
        manifest_parser: Turns a manifest payload into the image service
            endpoints of its canvases. Manifests cannot be opened without it.
        fetch: Blocking fetch used by the download threads
        clock: Monotonic clock used when ``frame`` is called without a time
    """

    imageAdded = Signal()
    imageRemoved = Signal()
    imageChanged = Signal()
    tilesChanged = Signal()
    userNotification = Signal(str)
    levelChanged = Signal()
    redrawRequested = Signal()

    def __init__(
        self,
        loader: AssetLoader,
        settings: ViewerSettings | None = None,
        manifest_parser: Callable[[bytes], list[str]] | None = None,
        fetch: Callable[[str], bytes] = fetch_bytes,
        clock: Callable[[], float] = time.monotonic,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or ViewerSettings.from_config()
        self._loader = loader
        self._manifest_parser = manifest_parser
        self._fetch = fetch
        self._clock = clock

        self._image: TiledImage | None = None
        self._level = 0
        self._view_mode = ViewMode.PLANAR

        self._camera = OrthographicCamera()
        self._pan_zoom = PanZoomState2d()
        self._orbit_camera = OrbitCamera()
        self._pan_orbit = PanOrbitState3d()

        self._mouse = MouseGesture()
        self._touch = TouchGesture()
        self._keys_pressed: set[Key] = set()
        self._keys_just_pressed: set[Key] = set()

        self._cache = TileCache(self._settings.max_cache_items)
        self._tile_mod = ModCounter()
        self._prune_mod = ModCounter()
        self._debouncer = ZoomDebouncer()
        self._required: RequiredTiles | None = None
        # Fit the image once the viewport has been laid out
        self._needs_fit = False
        self._invalidation = Invalidate.NONE

        self._manifest_channel: DownloadChannel[str] = DownloadChannel("manifest")
        self._image_channel: DownloadChannel[str] = DownloadChannel("image")

        self._navigator = CanvasNavigator(self)
        self._minimap = Minimap(self)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @Property(bool, notify=imageChanged)
    def hasImage(self) -> bool:
        return self._image is not None

    @Property(str, notify=imageChanged)
    def thumbnailUrl(self) -> str:
        """Side panel thumbnail of the current image, or "" without one."""
        if self._image is None:
            return ""
        url, _ = self._image.get_image_thumbnail(self._settings.thumbnail_size)
        return url

    @Property(int, notify=levelChanged)
    def level(self) -> int:
        return self._level

    @Property(float, notify=redrawRequested)
    def zoomScale(self) -> float:
        return self._camera.scale

    @Property(QObject, constant=True)
    def navigator(self) -> CanvasNavigator:
        return self._navigator

    @Property(QObject, constant=True)
    def minimap(self) -> Minimap:
        return self._minimap

    @property
    def settings(self) -> ViewerSettings:
        return self._settings

    @property
    def tiled_image(self) -> TiledImage | None:
        return self._image

    @property
    def camera(self) -> OrthographicCamera:
        return self._camera

    @property
    def orbit_camera(self) -> OrbitCamera:
        return self._orbit_camera

    @property
    def orbit_state(self) -> PanOrbitState3d:
        return self._pan_orbit

    @property
    def cache(self) -> TileCache:
        return self._cache

    @property
    def required_tiles(self) -> RequiredTiles | None:
        """Required tiles of the active level as of the last tile update."""
        return self._required

    @property
    def invalidation(self) -> Invalidate:
        """What the gestures of the last frame changed."""
        return self._invalidation

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    def set_view_mode(self, mode: ViewMode) -> None:
        if mode is self._view_mode:
            return
        logger.info("View mode %s", mode.value)
        self._view_mode = mode
        if mode is ViewMode.ORBIT:
            self._pan_orbit.is_added = True
        self._tile_mod.invalidate()
        self.redrawRequested.emit()

    def tiles(self) -> list[Tile]:
        """Cached tiles in draw order, for the renderer."""
        return self._cache.tiles()

    def get_cache_stats(self) -> dict:
        return self._cache.get_cache_stats()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @Slot(str)
    def loadImage(self, endpoint: str) -> None:
        """Fetch the description of the image served at ``endpoint``."""
        url = image_info_url(endpoint)
        logger.info("Loading image description %s", url)
        start_download(url, self._image_channel, endpoint, fetch=self._fetch)

    @Slot(str)
    def loadManifest(self, url: str) -> None:
        if self._manifest_parser is None:
            self.userNotification.emit("Opening manifests is not supported")
            return
        logger.info("Loading manifest %s", url)
        start_download(url, self._manifest_channel, url, fetch=self._fetch)

    @Slot(int)
    def selectCanvas(self, index: int) -> None:
        try:
            endpoint = self._navigator.select(index)
        except IndexError as e:
            self.userNotification.emit(str(e))
            return
        self.loadImage(endpoint)

    @Slot()
    def nextCanvas(self) -> None:
        endpoint = self._navigator.nextCanvas()
        if endpoint:
            self.loadImage(endpoint)

    @Slot()
    def previousCanvas(self) -> None:
        endpoint = self._navigator.previousCanvas()
        if endpoint:
            self.loadImage(endpoint)

    def _poll_downloads(self) -> None:
        result = self._manifest_channel.take()
        if isinstance(result, DownloadFailed):
            self.userNotification.emit(f"Failed to load manifest {result.url}: {result.message}")
        elif isinstance(result, DownloadDone):
            try:
                endpoints = self._manifest_parser(result.payload)
            except (IiifError, ValueError, KeyError) as e:
                logger.warning("Invalid manifest %s: %s", result.url, e)
                self.userNotification.emit(f"Invalid manifest {result.url}: {e}")
            else:
                self._navigator.set_endpoints(endpoints)
                if endpoints:
                    self.loadImage(self._navigator.currentEndpoint)
                else:
                    self.userNotification.emit(f"Manifest {result.url} has no images")

        result = self._image_channel.take()
        if isinstance(result, DownloadFailed):
            self.userNotification.emit(f"Failed to load image {result.url}: {result.message}")
        elif isinstance(result, DownloadDone):
            try:
                image = TiledImage.from_json(result.payload, result.info)
            except (IiifError, ValueError) as e:
                logger.warning("Invalid image description %s: %s", result.url, e)
                self.userNotification.emit(f"Invalid image description {result.url}: {e}")
            else:
                self.set_tiled_image(image)

    # ------------------------------------------------------------------
    # Tiled image lifecycle
    # ------------------------------------------------------------------

    def set_tiled_image(self, image: TiledImage | None) -> None:
        """Replace the displayed image, running the removal and add hooks."""
        if self._image is not None:
            self._on_tiled_image_removed()
        self._image = image
        if image is not None:
            self._on_tiled_image_added()

    def _on_tiled_image_added(self) -> None:
        image = self._image
        logger.info("Tiled image added: %r", image)

        self._camera.world_image_max_size = image.get_world_max_size_rect().size
        self._fit_camera()
        self._needs_fit = not self._camera.has_viewport

        self._minimap.on_tiled_image_added(image)
        self._tile_mod.invalidate()
        self.imageAdded.emit()
        self.imageChanged.emit()
        self.redrawRequested.emit()

    def _on_tiled_image_removed(self) -> None:
        logger.info("Tiled image removed: %r", self._image)
        self._cache.clear(self._loader)
        self._debouncer.cancel()
        self._required = None
        self._camera.world_image_max_size = (0.0, 0.0)
        self._needs_fit = False
        self._minimap.on_tiled_image_removed()
        self.imageRemoved.emit()
        self.imageChanged.emit()
        self.tilesChanged.emit()

    def _fit_camera(self) -> None:
        """Show the whole image in the current viewport."""
        translation, scale, level = self._image.fit_to_viewport(self._camera.viewport_size)
        self._camera.translation = translation
        self._camera.scale = scale
        self._pan_zoom.translation = translation
        self._pan_zoom.scale = scale
        self._set_level(level)

    def _set_level(self, level: int) -> None:
        if level != self._level:
            logger.debug("Level %d -> %d", self._level, level)
            self._level = level
            self.levelChanged.emit()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    @Slot(float, float)
    def setViewportSize(self, width: float, height: float) -> None:
        self._camera.viewport_size = (width, height)
        if self._needs_fit and self._image is not None and self._camera.has_viewport:
            logger.debug("Viewport laid out (%gx%g), fitting image", width, height)
            self._fit_camera()
            self._needs_fit = False
        self._tile_mod.invalidate()
        self.redrawRequested.emit()

    def mouse_press(self, button: Qt.MouseButton, pos: Point) -> None:
        mapped = _MOUSE_BUTTONS.get(button)
        if mapped is not None:
            self._mouse.press(mapped, pos)

    def mouse_release(self, button: Qt.MouseButton) -> None:
        mapped = _MOUSE_BUTTONS.get(button)
        if mapped is not None:
            self._mouse.release(mapped)

    @Slot(int, float, float)
    def mousePressed(self, button: int, x: float, y: float) -> None:
        self.mouse_press(Qt.MouseButton(button), (x, y))

    @Slot(int)
    def mouseReleased(self, button: int) -> None:
        self.mouse_release(Qt.MouseButton(button))

    @Slot(float, float)
    def mouseMoved(self, x: float, y: float) -> None:
        self._mouse.move((x, y))

    @Slot(float)
    def wheelScrolled(self, amount: float) -> None:
        self._mouse.scroll(amount)

    @Slot(int, float, float)
    def touchPressed(self, touch_id: int, x: float, y: float) -> None:
        self._touch.press(touch_id, (x, y))

    @Slot(int, float, float)
    def touchMoved(self, touch_id: int, x: float, y: float) -> None:
        self._touch.move(touch_id, (x, y))

    @Slot(int)
    def touchReleased(self, touch_id: int) -> None:
        self._touch.release(touch_id)

    @Slot(int)
    def touchCancelled(self, touch_id: int) -> None:
        self._touch.cancel(touch_id)

    def key_press(self, key: Qt.Key) -> None:
        mapped = _KEYS.get(key)
        if mapped is not None:
            if mapped not in self._keys_pressed:
                self._keys_just_pressed.add(mapped)
            self._keys_pressed.add(mapped)

    def key_release(self, key: Qt.Key) -> None:
        mapped = _KEYS.get(key)
        if mapped is not None:
            self._keys_pressed.discard(mapped)

    @Slot(int)
    def keyPressed(self, key: int) -> None:
        self.key_press(Qt.Key(key))

    @Slot(int)
    def keyReleased(self, key: int) -> None:
        self.key_release(Qt.Key(key))

    @Slot(float, float)
    def minimapClicked(self, u: float, v: float) -> None:
        """Centre the view on a point picked on the minimap."""
        world_pos = self._minimap.world_position_at(u, v)
        if world_pos is None:
            return
        self._camera.translation = world_pos
        self._pan_zoom.translation = world_pos
        self._tile_mod.invalidate()
        self.redrawRequested.emit()

    # ------------------------------------------------------------------
    # Frame pipeline
    # ------------------------------------------------------------------

    def frame(self, now: float | None = None) -> None:
        """Run one update pass.

        Args:
            now: Current time in seconds; the controller's clock if omitted
        """
        if now is None:
            now = self._clock()

        self._poll_downloads()

        if self._debouncer.armed:
            if self._debouncer.poll(now):
                self._tile_mod.invalidate()
            # Keep redrawing while the zoom settles.
            self.redrawRequested.emit()

        if self._view_mode is ViewMode.ORBIT:
            self._apply_orbit_gestures()
        else:
            self._apply_planar_gestures(now)

        if self._image is None:
            return

        if self._view_mode is ViewMode.PLANAR:
            self._bound_translation()
            self._minimap.update_view_rect(self._camera)

        if self._cache.poll_load_states(self._loader).changed:
            self._tile_mod.invalidate()

        if self._prune_mod.consume() and self._cache.is_over_budget():
            self._prune_tiles()

        if self._view_mode is ViewMode.PLANAR and self._tile_mod.consume():
            self._update_tiles(now)

    def _apply_planar_gestures(self, now: float) -> None:
        centre = self._camera.viewport_centre

        mouse = self._mouse.frame(self._pan_zoom, self._camera, self._settings, centre)
        touch = self._touch.frame(self._pan_zoom, self._camera, self._settings, centre)
        keys = apply_keyboard(
            self._keys_pressed, self._keys_just_pressed, self._camera, self._settings
        )
        self._keys_just_pressed.clear()
        if keys:
            self._pan_zoom.translation = self._camera.translation
            self._pan_zoom.scale = self._camera.scale

        self._invalidation = mouse | touch | keys

        if mouse & Invalidate.TRANSLATE:
            self._tile_mod.invalidate()
        elif mouse & Invalidate.ZOOM:
            self._debouncer.arm(now)
        if touch or keys:
            self._tile_mod.invalidate()

        if self._invalidation:
            if self._image is not None:
                self._set_level(self._image.get_level_at(self._camera.scale))
            self.redrawRequested.emit()

    def _apply_orbit_gestures(self) -> None:
        centre = self._camera.viewport_centre
        self._mouse.frame(self._pan_orbit, self._orbit_camera, self._settings, centre)
        self._touch.frame(self._pan_orbit, self._orbit_camera, self._settings, centre)
        self._keys_just_pressed.clear()
        if self._pan_orbit.is_added:
            self._pan_orbit.update_camera(self._orbit_camera)
        self._invalidation = Invalidate.NONE

    def _bound_translation(self) -> None:
        bounded = bound_translation(
            self._camera, self._image.get_world_max_size_rect(), VIEWPORT_MARGIN_PX
        )
        if bounded != self._camera.translation:
            self._camera.translation = bounded
            self._pan_zoom.translation = bounded

    def _required_tiles_at(self, level: int) -> RequiredTiles | None:
        corners = self._camera.get_world_viewport_rect()
        if corners is None:
            return None
        return self._image.get_required_tiles(level, *corners)

    def _update_tiles(self, now: float) -> None:
        required = self._required_tiles_at(self._level)
        if required is None:
            # Viewport not laid out yet; try again next frame.
            self._tile_mod.invalidate()
            self.redrawRequested.emit()
            return

        self._required = required
        if self._cache.reconcile(
            required,
            self._level,
            now,
            self._loader,
            lambda tile: self._image.get_image_tile_url_at(tile.image_rect),
        ):
            self._prune_mod.invalidate()

        self.tilesChanged.emit()
        self.redrawRequested.emit()

    def _prune_tiles(self) -> None:
        logger.debug("Pruning tiles at current level %d", self._level)
        # Only the lower-res levels up to the active one keep their in-view tiles.
        protected = [self._required_tiles_at(level) for level in range(self._level + 1)]
        evicted = self._cache.prune(protected, self._loader)
        if evicted:
            self.tilesChanged.emit()
