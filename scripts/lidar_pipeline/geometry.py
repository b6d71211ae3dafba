"""
Bounding boxes and Web Mercator tile math.

All tile math works in EPSG:3857 meters with XYZ tile numbering
(origin at the top-left, y growing southward).

Usage:
    from .geometry import BoundingBox, TileId, covered_tiles

    bbox = BoundingBox(2_000_000, 6_100_000, 2_010_000, 6_110_000)
    for tile in covered_tiles(bbox, 14):
        print(tile, tile.bounds())
"""

import math
from dataclasses import dataclass
from typing import Iterator


# Half the Web Mercator world width in meters
MERCATOR_HALF_WORLD = 20037508.342789244
MERCATOR_WORLD = 2 * MERCATOR_HALF_WORLD


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in a single CRS."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_string(cls, value: str) -> "BoundingBox":
        """Parse ``"min_x,min_y,max_x,max_y"``."""
        parts = [float(p) for p in value.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected 4 comma-separated numbers, got {value!r}")
        return cls(*parts)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        """Inclusive point containment."""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def extended(self, margin: float) -> "BoundingBox":
        """Return a new box grown by ``margin`` on all four sides."""
        return BoundingBox(
            self.min_x - margin,
            self.min_y - margin,
            self.max_x + margin,
            self.max_y + margin,
        )

    def overlaps(self, other: "BoundingBox") -> bool:
        """2D interval-overlap test, touching edges count as overlap."""
        return (
            other.max_x >= self.min_x
            and other.min_x <= self.max_x
            and other.max_y >= self.min_y
            and other.min_y <= self.max_y
        )

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def __str__(self) -> str:
        return ",".join(f"{v:.3f}" for v in self.as_tuple())


@dataclass(frozen=True)
class TileId:
    """Web Mercator XYZ tile coordinates."""

    zoom: int
    x: int
    y: int

    def bounds(self) -> BoundingBox:
        """Native EPSG:3857 bounds of the tile."""
        size = tile_size_meters(self.zoom)
        min_x = -MERCATOR_HALF_WORLD + self.x * size
        max_y = MERCATOR_HALF_WORLD - self.y * size
        return BoundingBox(min_x, max_y - size, min_x + size, max_y)

    def children(self, levels: int) -> Iterator["TileId"]:
        """Yield the descendants ``levels`` zoom levels down, row by row."""
        factor = 1 << levels
        for dy in range(factor):
            for dx in range(factor):
                yield TileId(self.zoom + levels, self.x * factor + dx, self.y * factor + dy)

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


def tile_size_meters(zoom: int) -> float:
    """Edge length of a tile at ``zoom`` in Web Mercator meters."""
    return MERCATOR_WORLD / (1 << zoom)


def pixels_per_meter(zoom: int, tile_size: int) -> float:
    """Raster resolution of ``tile_size``-pixel tiles at ``zoom``.

    This is nominal Web Mercator resolution, not ground resolution.
    """
    return tile_size / tile_size_meters(zoom)


def covered_tiles(bbox: BoundingBox, zoom: int) -> Iterator[TileId]:
    """Iterate over all tiles at ``zoom`` intersecting ``bbox``.

    A box edge lying exactly on a tile boundary does not pull in the
    neighbouring tile.

    Args:
        bbox: Extent in EPSG:3857 meters
        zoom: Zoom level

    Yields:
        TileId for each covered tile, ordered by x then y
    """
    size = tile_size_meters(zoom)
    last = (1 << zoom) - 1

    def clamp(index: int) -> int:
        return max(0, min(last, index))

    x_min = clamp(math.floor((bbox.min_x + MERCATOR_HALF_WORLD) / size))
    x_max = clamp(math.ceil((bbox.max_x + MERCATOR_HALF_WORLD) / size) - 1)
    y_min = clamp(math.floor((MERCATOR_HALF_WORLD - bbox.max_y) / size))
    y_max = clamp(math.ceil((MERCATOR_HALF_WORLD - bbox.min_y) / size) - 1)

    for x in range(x_min, x_max + 1):
        for y in range(y_min, y_max + 1):
            yield TileId(zoom, x, y)
