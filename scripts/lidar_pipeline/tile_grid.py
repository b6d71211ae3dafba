"""
Tile grid construction and per-tile point buffers.

A grid is a list of TileMeta records, one per covered supertile. Each
record owns a buffered bounding box (fixed at construction) and an
append-only point buffer guarded by its own lock, so ingestion workers
appending to different tiles never block each other.
"""

import threading
from typing import Iterable, NamedTuple

import numpy as np
from numpy.typing import NDArray

from .geometry import BoundingBox, TileId, covered_tiles, pixels_per_meter


class PointWithHeight(NamedTuple):
    """Ground point in the working CRS."""

    x: float
    y: float
    height: float


class TileMeta:
    """One tile of the grid and the points collected for it."""

    __slots__ = ("_tile", "_bbox", "_lock", "_points")

    def __init__(self, tile: TileId, bbox: BoundingBox):
        self._tile = tile
        self._bbox = bbox
        self._lock = threading.Lock()
        self._points: list[PointWithHeight] = []

    @property
    def tile(self) -> TileId:
        return self._tile

    @property
    def bbox(self) -> BoundingBox:
        """Buffered bounding box in the working CRS."""
        return self._bbox

    @property
    def native_bbox(self) -> BoundingBox:
        """Unbuffered tile bounds."""
        return self._tile.bounds()

    def append(self, point: PointWithHeight) -> None:
        with self._lock:
            self._points.append(point)

    def extend(self, points: Iterable[PointWithHeight]) -> None:
        """Append a batch of points while holding the lock once."""
        batch = list(points)
        with self._lock:
            self._points.extend(batch)

    @property
    def points(self) -> tuple[PointWithHeight, ...]:
        """Snapshot of the buffered points."""
        with self._lock:
            return tuple(self._points)

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)

    def as_array(self) -> NDArray[np.float64]:
        """Buffered points as an (N, 3) array of x, y, height."""
        with self._lock:
            if not self._points:
                return np.empty((0, 3), dtype=np.float64)
            return np.array(self._points, dtype=np.float64)

    def __repr__(self) -> str:
        return f"TileMeta({self._tile}, bbox={self._bbox}, points={len(self)})"


def buffer_distance(zoom: int, tile_size: int, buffer_pixels: int) -> float:
    """Convert a buffer in output pixels to working-CRS meters."""
    return buffer_pixels / pixels_per_meter(zoom, tile_size)


def build_tile_grid(
    bbox: BoundingBox,
    zoom: int,
    supertile_zoom_offset: int,
    tile_size: int,
    buffer_pixels: int,
) -> list[TileMeta]:
    """Build the buffered supertile grid covering ``bbox``.

    Tiles are taken at ``zoom - supertile_zoom_offset``. The buffer is
    expressed in pixels at the output zoom, so supertiles and plain
    tiles get the same margin on the ground.

    Args:
        bbox: Requested extent in EPSG:3857
        zoom: Output zoom level
        supertile_zoom_offset: Levels to coarsen by (0 = no supertiles)
        tile_size: Output tile size in pixels
        buffer_pixels: Overlap margin in output pixels

    Returns:
        TileMeta list with empty point buffers
    """
    margin = buffer_distance(zoom, tile_size, buffer_pixels)

    return [
        TileMeta(tile, tile.bounds().extended(margin))
        for tile in covered_tiles(bbox, zoom - supertile_zoom_offset)
    ]
