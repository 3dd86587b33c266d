"""Coordinate transforms between world, image-pixel and tile-grid space.

World space has its vertical axis inverted relative to image space: the
image origin is top-left growing downward, while in world space the
image's top edge sits at Y=0 and Y grows upward. The two conversions
below are pure reflections; any scaling is explicit and keyed to a level.
"""

from __future__ import annotations

from pyramidview.core.types import Point, Size


def world_to_image(p: Point) -> Point:
    """Convert a world-space point to image space."""
    return (p[0], -p[1])


def image_to_world(p: Point) -> Point:
    """Convert an image-space point to world space."""
    return (p[0], -p[1])


def world_to_image_scale(levels: list[Size], level: int) -> float:
    """Linear magnification from a level's pixel grid to full resolution."""
    return levels[-1].width / levels[level].width


def tile_to_image(levels: list[Size], tile_size: Size, level: int, p: Point) -> Point:
    """Convert a tile-grid coordinate of ``level`` to image space."""
    scale = world_to_image_scale(levels, level)
    return (p[0] * tile_size.width * scale, p[1] * tile_size.height * scale)


def image_to_tile(levels: list[Size], tile_size: Size, level: int, p: Point) -> Point:
    """Convert an image-space point to a tile-grid coordinate of ``level``."""
    scale = world_to_image_scale(levels, level)
    return (p[0] / (tile_size.width * scale), p[1] / (tile_size.height * scale))


def clamp_point(p: Point, lo: Point, hi: Point) -> Point:
    return (min(max(p[0], lo[0]), hi[0]), min(max(p[1], lo[1]), hi[1]))
