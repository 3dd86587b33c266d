"""Shared type definitions for the pyramidview core module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple

Point = tuple[float, float]


class Size(NamedTuple):
    """Pixel dimensions of a pyramid level, a tile or a thumbnail."""

    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


class TileIndex(NamedTuple):
    """Cell of a level's regular tile grid.

    Attributes:
        x: Column index (0-based)
        y: Row index (0-based)
        level: Pyramid level (0 = lowest resolution)
    """

    x: int
    y: int
    level: int


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, always stored with min <= max."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_corners(cls, p0: Point, p1: Point) -> Rect:
        return cls(
            min(p0[0], p1[0]),
            min(p0[1], p1[1]),
            max(p0[0], p1[0]),
            max(p0[1], p1[1]),
        )

    @property
    def min(self) -> Point:
        return (self.min_x, self.min_y)

    @property
    def max(self) -> Point:
        return (self.max_x, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def size(self) -> Point:
        return (self.width, self.height)

    @property
    def half_size(self) -> Point:
        return (self.width / 2.0, self.height / 2.0)

    @property
    def center(self) -> Point:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def intersect(self, other: Rect) -> Rect:
        """Intersection; collapses to an empty rect at the min corner if disjoint."""
        min_x = max(self.min_x, other.min_x)
        min_y = max(self.min_y, other.min_y)
        max_x = max(min_x, min(self.max_x, other.max_x))
        max_y = max(min_y, min(self.max_y, other.max_y))
        return Rect(min_x, min_y, max_x, max_y)


@dataclass
class Tile:
    """A tile emitted by the required-tile computation.

    Attributes:
        index: Grid cell of the tile
        image_rect: Bounding rectangle in full-resolution image pixels
        world_rect: Same rectangle in world space
        handle: Loaded-payload handle from the asset loader, once requested
        placeholder: Drawn translucent because it belongs to another level
        depth: Draw order hint (0 for the active level, below zero otherwise)
        alpha: Opacity the renderer should draw the tile with
    """

    index: TileIndex
    image_rect: Rect
    world_rect: Rect
    handle: Any = None
    placeholder: bool = False
    depth: float = 0.0
    alpha: float = 1.0


class RequiredTiles(NamedTuple):
    """Result of a required-tile computation for one level."""

    tiles: list[Tile]
    x_range: range
    y_range: range

    def covers(self, index: TileIndex) -> bool:
        """Whether the index lies inside the produced x/y ranges."""
        return index.x in self.x_range and index.y in self.y_range
