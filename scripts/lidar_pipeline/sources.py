"""
Point sources and resolution of the archives covering a request.

A source spec says where points come from. ``NoSource`` builds the tile
grid only; ``LazIndexSource`` points to a spatial index of LAS/LAZ
archives stored in the archive CRS.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .geometry import BoundingBox
from .projection import ARCHIVE_CRS, DEFAULT_DENSIFY_POINTS, WORKING_CRS, transform_bbox
from .spatial_index import LazIndex


@dataclass(frozen=True)
class NoSource:
    """No point source; tiles stay empty."""


@dataclass(frozen=True)
class LazIndexSource:
    """Spatial index database of LAS/LAZ archives."""

    path: Path


SourceSpec = Union[NoSource, LazIndexSource]


@dataclass(frozen=True)
class ResolvedSources:
    """Archives intersecting a request and the request in archive CRS."""

    files: list[str]
    archive_bbox: BoundingBox


def resolve_sources(
    source: SourceSpec,
    bbox: BoundingBox,
    working_crs: str = WORKING_CRS,
    archive_crs: str = ARCHIVE_CRS,
    densify_pts: int = DEFAULT_DENSIFY_POINTS,
) -> Optional[ResolvedSources]:
    """Find the archives that may hold points for ``bbox``.

    Args:
        source: Point source spec
        bbox: Requested extent in the working CRS
        working_crs: CRS of ``bbox``
        archive_crs: CRS the index and archives are stored in
        densify_pts: Edge samples for the bbox reprojection

    Returns:
        Matching files and the reprojected query box, or None when the
        source has no points

    Raises:
        ProjectionError: If the CRS pair is unsupported
        SpatialIndexError: If the index cannot be opened or queried
    """
    if isinstance(source, NoSource):
        return None

    if not isinstance(source, LazIndexSource):
        raise TypeError(f"Unsupported source: {source!r}")

    archive_bbox = transform_bbox(bbox, working_crs, archive_crs, densify_pts)

    with LazIndex.open(source.path) as index:
        files = index.query(archive_bbox)

    return ResolvedSources(files=files, archive_bbox=archive_bbox)
