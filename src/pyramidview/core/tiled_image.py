"""TiledImage: the pyramid descriptor of one deep-zoom image."""

from __future__ import annotations

import logging
import math

from pyramidview.config import DEGENERATE_TILE_PX
from pyramidview.core import geometry
from pyramidview.core.iiif import (
    ImageFeature,
    ImageFormat,
    ImageInfo,
    image_info_url,
    parse_image_info_json,
)
from pyramidview.core.types import Point, Rect, RequiredTiles, Size, Tile, TileIndex

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class TiledImage:
    """Multi-resolution pyramid of one image served by an IIIF endpoint.

    Levels are ordered ascending by pixel area: index 0 is the lowest
    resolution tier and the last index is full resolution. The descriptor
    is immutable once built; it is discarded when another image is shown.
    """

    def __init__(
        self,
        endpoint: str,
        tile_size: Size,
        levels: list[Size],
        image_format: ImageFormat,
        supported_features: frozenset[ImageFeature] | set[ImageFeature],
        optional_sizes: list[Size] | None = None,
    ) -> None:
        if not levels:
            raise ValueError("a tiled image needs at least one level")
        if tile_size.width <= 0 or tile_size.height <= 0:
            raise ValueError(f"invalid tile size {tile_size}")
        self._endpoint = endpoint
        self._tile_size = Size(*tile_size)
        self._levels = [Size(*level) for level in levels]
        self._image_format = image_format
        self._supported_features = frozenset(supported_features)
        self._optional_sizes = [Size(*s) for s in (optional_sizes or [self._levels[-1]])]

    @classmethod
    def from_image_info(cls, info: ImageInfo, endpoint: str) -> TiledImage:
        """Build the pyramid from a normalized image description.

        Tiling needs both pixel-region and width/height addressing. Without
        them the image is fetched whole, as a single level.
        """
        features = info.supported_features

        if ImageFeature.REGION_BY_PX in features and ImageFeature.SIZE_BY_WH in features:
            logger.info("RegionByPx and SizeByWh supported. Use tiling.")
            tile_size = info.tile_size
            levels = info.scaling_sizes
        else:
            logger.info("RegionByPx or SizeByWh not supported. Get the full image.")
            tile_size = info.full_size
            levels = [info.full_size]

        return cls(
            endpoint,
            tile_size,
            levels,
            info.preferred_format,
            features,
            info.optional_sizes,
        )

    @classmethod
    def from_json(cls, payload: str | bytes, endpoint: str) -> TiledImage:
        """Build the pyramid from a raw ``info.json`` payload."""
        return cls.from_image_info(parse_image_info_json(payload), endpoint)

    @staticmethod
    def image_info_url(endpoint: str) -> str:
        return image_info_url(endpoint)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def tile_size(self) -> Size:
        return self._tile_size

    @property
    def levels(self) -> list[Size]:
        return list(self._levels)

    @property
    def num_levels(self) -> int:
        return len(self._levels)

    @property
    def image_format(self) -> ImageFormat:
        return self._image_format

    @property
    def supported_features(self) -> frozenset[ImageFeature]:
        return self._supported_features

    @property
    def optional_sizes(self) -> list[Size]:
        return list(self._optional_sizes)

    @property
    def max_size(self) -> Size:
        """Full resolution size (the last level)."""
        return self._levels[-1]

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def world_to_image(self, p: Point) -> Point:
        return geometry.world_to_image(p)

    def image_to_world(self, p: Point) -> Point:
        return geometry.image_to_world(p)

    def world_to_image_scale(self, level: int) -> float:
        return geometry.world_to_image_scale(self._levels, level)

    def tile_to_image(self, level: int, p: Point) -> Point:
        return geometry.tile_to_image(self._levels, self._tile_size, level, p)

    def image_to_tile(self, level: int, p: Point) -> Point:
        return geometry.image_to_tile(self._levels, self._tile_size, level, p)

    def get_world_max_size_rect(self) -> Rect:
        """Full image bounds in world space, i.e. (0, 0)-(W, -H)."""
        return Rect.from_corners(
            self.image_to_world((0.0, 0.0)),
            self.image_to_world((float(self.max_size.width), float(self.max_size.height))),
        )

    def get_image_max_size_rect(self) -> Rect:
        """Full image bounds in image space, i.e. (0, 0)-(W, H)."""
        return Rect(0.0, 0.0, float(self.max_size.width), float(self.max_size.height))

    # ------------------------------------------------------------------
    # Level selection and tile coverage
    # ------------------------------------------------------------------

    def get_level_at(self, world_zoom_scale: float) -> int:
        """Get the resolution level for a camera zoom scale.

        Returns the lowest level whose width is at least the resolution
        needed on screen, or the full resolution level if none is.

        Args:
            world_zoom_scale: World units per screen pixel (larger = zoomed out)
        """
        if world_zoom_scale <= 0:
            raise ValueError(f"zoom scale must be positive, got {world_zoom_scale}")

        origin = self.world_to_image((0.0, 0.0))
        corner = self.world_to_image((world_zoom_scale, world_zoom_scale))
        image_zoom_scale = corner[0] - origin[0]
        needed_width = int(abs(self.max_size.width / image_zoom_scale))

        for level, size in enumerate(self._levels):
            if needed_width <= size.width:
                return level

        return len(self._levels) - 1

    def get_required_tiles(
        self, level: int, world_pos_min: Point, world_pos_max: Point
    ) -> RequiredTiles:
        """Get the tiles of ``level`` needed to cover a world-space viewport.

        Args:
            level: Pyramid level to tile
            world_pos_min: One viewport corner in world space
            world_pos_max: The opposite viewport corner in world space

        Returns:
            Tiles in row-major order plus the inclusive x/y index ranges produced
        """
        if not 0 <= level < len(self._levels):
            raise IndexError(f"level {level} out of range (0..{len(self._levels) - 1})")

        max_w = float(self.max_size.width)
        max_h = float(self.max_size.height)
        upper = (max_w - 1.0, max_h - 1.0)

        image_p0 = geometry.clamp_point(self.world_to_image(world_pos_min), (0.0, 0.0), upper)
        image_p1 = geometry.clamp_point(self.world_to_image(world_pos_max), (0.0, 0.0), upper)

        image_min = (min(image_p0[0], image_p1[0]), min(image_p0[1], image_p1[1]))
        image_max = (max(image_p0[0], image_p1[0]), max(image_p0[1], image_p1[1]))

        tile_min = self.image_to_tile(level, image_min)
        tile_max = self.image_to_tile(level, image_max)

        tiles: list[Tile] = []
        xs: list[int] = []
        ys: list[int] = []

        for y in range(int(tile_min[1]), int(tile_max[1]) + 1):
            for x in range(int(tile_min[0]), int(tile_max[0]) + 1):
                top_left = self.tile_to_image(level, (x, y))
                bottom_right = self.tile_to_image(level, (x + 1, y + 1))
                bottom_right = (min(bottom_right[0], max_w), min(bottom_right[1], max_h))

                image_rect = Rect.from_corners(top_left, bottom_right)
                if image_rect.width <= DEGENERATE_TILE_PX or image_rect.height <= DEGENERATE_TILE_PX:
                    continue

                world_rect = Rect.from_corners(
                    self.image_to_world(top_left), self.image_to_world(bottom_right)
                )
                xs.append(x)
                ys.append(y)
                tiles.append(Tile(TileIndex(x, y, level), image_rect, world_rect))

        if not tiles:
            return RequiredTiles(tiles, range(0), range(0))
        return RequiredTiles(
            tiles, range(min(xs), max(xs) + 1), range(min(ys), max(ys) + 1)
        )

    def fit_to_viewport(self, viewport_size: Point) -> tuple[Point, float, int]:
        """Camera placement showing the whole image in a viewport.

        Returns:
            (world translation of the camera centre, zoom scale, level)
        """
        world_rect = self.get_world_max_size_rect()
        width = viewport_size[0] if viewport_size[0] > 0 else 1.0
        height = viewport_size[1] if viewport_size[1] > 0 else 1.0
        scale = max(world_rect.width / width, world_rect.height / height)
        translation = (world_rect.width / 2.0, -world_rect.height / 2.0)
        return translation, scale, self.get_level_at(scale)

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def get_image_url(self, left: int, top: int, width: int, height: int, size: Size) -> str:
        """Image request URL for a pixel region scaled to ``size``.

        The region token is ``full`` when the region is the whole image.
        """
        max_size = self.max_size
        if left == 0 and top == 0 and width == max_size.width and height == max_size.height:
            region = "full"
        else:
            region = f"{left},{top},{width},{height}"

        return (
            f"{self._endpoint}/{region}/{size[0]},{size[1]}/0/"
            f"default.{self._image_format.extension}"
        )

    def get_image_tile_url_at(self, image_rect: Rect) -> str:
        """Image request URL for a tile's image-space rectangle."""
        left = _round_half_up(image_rect.min_x)
        top = _round_half_up(image_rect.min_y)
        return self.get_image_url(
            left,
            top,
            _round_half_up(image_rect.max_x - left),
            _round_half_up(image_rect.max_y - top),
            self._tile_size,
        )

    def get_image_thumbnail(self, size: int) -> tuple[str, Size]:
        """URL and pixel size of a whole-image thumbnail about ``size`` wide.

        Without width/height sizing, the server's listed sizes are used: the
        first one larger than ``size`` squared, else the smallest one.
        """
        max_size = self.max_size

        if ImageFeature.SIZE_BY_WH in self._supported_features:
            longest = max(max_size.width, max_size.height)
            thumbnail_size = Size(
                int(size * max_size.width / longest),
                int(size * max_size.height / longest),
            )
        else:
            thumbnail_size = next(
                (s for s in self._optional_sizes if s.area > size * size),
                self._optional_sizes[0],
            )

        logger.debug("Thumbnail %s", thumbnail_size)
        url = self.get_image_url(0, 0, max_size.width, max_size.height, thumbnail_size)
        return url, thumbnail_size

    def __repr__(self) -> str:
        return (
            f"TiledImage({self._endpoint!r}, tile_size={tuple(self._tile_size)}, "
            f"levels={[tuple(s) for s in self._levels]})"
        )
