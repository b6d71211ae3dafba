"""
Point buffer to elevation grid interpolation.

Heights are interpolated linearly over a Delaunay triangulation of the
tile's buffered point set, sampled at pixel centres. The grid carries
one extra pixel on every side so the 3x3 slope kernel can produce a
value for every output pixel.
"""

import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import LinearNDInterpolator
from scipy.spatial import QhullError

from .tile_grid import TileMeta


def sample_coordinates(
    tile_meta: TileMeta,
    size: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Pixel-centre sample positions for a ``size``-pixel tile.

    Returns:
        Tuple of (xs, ys), each of length ``size + 2``; ys run south to
        north
    """
    native = tile_meta.native_bbox
    resolution = native.width / size
    offsets = (np.arange(size + 2, dtype=np.float64) - 0.5) * resolution
    return native.min_x + offsets, native.min_y + offsets


def rasterize_tile(tile_meta: TileMeta, size: int) -> NDArray[np.float64]:
    """Interpolate a tile's points to a (size + 2, size + 2) grid.

    Row 0 is the southern edge. Cells outside the convex hull of the
    points, and every cell when there are too few points to
    triangulate, are NaN and shade as flat.

    Args:
        tile_meta: Tile with its ingested points
        size: Output tile size in pixels

    Returns:
        Elevation grid in meters
    """
    xs, ys = sample_coordinates(tile_meta, size)
    grid_x, grid_y = np.meshgrid(xs, ys)

    points = tile_meta.as_array()
    if len(points) < 3:
        return np.full(grid_x.shape, np.nan)

    # Triangulate relative to the tile origin; raw Web Mercator values
    # are large enough to cost Qhull precision
    origin = np.array([xs[0], ys[0]])

    try:
        interpolator = LinearNDInterpolator(
            points[:, :2] - origin, points[:, 2], fill_value=np.nan
        )
    except QhullError:
        # Collinear or otherwise degenerate point set
        return np.full(grid_x.shape, np.nan)

    return interpolator(grid_x - origin[0], grid_y - origin[1])
