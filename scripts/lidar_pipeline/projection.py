"""
Coordinate transformation between the archive and working CRS.

Point archives are stored in S-JTSK [JTSK03] / Krovak East North
(EPSG:8353); tiles are built in Web Mercator (EPSG:3857).

pyproj Transformer objects are not thread-safe and are expensive to
create, so callers build one per worker thread and reuse it.
"""

from pyproj import Transformer
from pyproj.exceptions import CRSError, ProjError

from .errors import ProjectionError
from .geometry import BoundingBox


WORKING_CRS = "EPSG:3857"
ARCHIVE_CRS = "EPSG:8353"

# Points sampled along each bbox edge before re-enveloping
DEFAULT_DENSIFY_POINTS = 11


def make_transformer(source_crs: str, target_crs: str) -> Transformer:
    """Create a transformer with x=easting, y=northing axis order.

    Raises:
        ProjectionError: If the CRS pair is unknown or unsupported
    """
    try:
        return Transformer.from_crs(source_crs, target_crs, always_xy=True)
    except (CRSError, ProjError) as e:
        raise ProjectionError(
            f"Cannot create transformation {source_crs} -> {target_crs}: {e}"
        ) from e


def transform_bbox(
    bbox: BoundingBox,
    source_crs: str,
    target_crs: str,
    densify_pts: int = DEFAULT_DENSIFY_POINTS,
) -> BoundingBox:
    """Reproject a box, densifying its edges to catch curvature.

    A straight edge in one CRS can bow in another, so each edge is
    sampled at ``densify_pts`` intermediate points and the result is the
    envelope of all transformed samples.

    Args:
        bbox: Box in ``source_crs``
        source_crs: Source CRS identifier
        target_crs: Target CRS identifier
        densify_pts: Samples per edge

    Returns:
        Axis-aligned box in ``target_crs`` enclosing the transformed box
    """
    transformer = make_transformer(source_crs, target_crs)
    try:
        bounds = transformer.transform_bounds(
            bbox.min_x,
            bbox.min_y,
            bbox.max_x,
            bbox.max_y,
            densify_pts=densify_pts,
            errcheck=True,
        )
    except ProjError as e:
        raise ProjectionError(f"Failed to transform bounds {bbox}: {e}") from e
    return BoundingBox(*bounds)
