"""Tile pyramid core: geometry, pyramid descriptor, tile cache and downloads."""

from .iiif import (
    IiifError,
    IiifMissingInfo,
    IiifFormatError,
    IiifDeserializationError,
    IndexLookupError,
    ImageInfo,
    parse_image_info_json,
)
from .tile_cache import AssetLoader, LoadState, TileCache
from .tiled_image import TiledImage
from .types import Rect, RequiredTiles, Size, Tile, TileIndex

__all__ = [
    "IiifError",
    "IiifMissingInfo",
    "IiifFormatError",
    "IiifDeserializationError",
    "IndexLookupError",
    "ImageInfo",
    "parse_image_info_json",
    "AssetLoader",
    "LoadState",
    "TileCache",
    "TiledImage",
    "Rect",
    "RequiredTiles",
    "Size",
    "Tile",
    "TileIndex",
]
