"""
LiDAR Hillshade Tile Pipeline

Turns classified airborne LiDAR archives into shaded relief map tiles:
- Buffered Web Mercator tile grid with optional supertiles
- SQLite spatial index of LAS/LAZ archives (S-JTSK / EPSG:8353)
- Parallel ingestion of ground points with per-worker reprojection
- Delaunay interpolation of each tile's points to an elevation grid
- Horn slope/aspect and multi-layer Igor/oblique/slope shading

Usage:
    # Index archives
    python -m lidar_pipeline.cli index laz_index.sqlite data/laz/*.laz

    # Render region
    python -m lidar_pipeline.cli render --bbox "1900000,6120000,1910000,6130000" \
        --zoom 15 --index laz_index.sqlite

    # List presets
    python -m lidar_pipeline.cli presets
"""

from .config import PipelineConfig
from .errors import (
    ArchiveReadError,
    ConfigError,
    PipelineError,
    ProjectionError,
    SpatialIndexError,
)
from .geometry import BoundingBox, TileId
from .ingest import IngestStats, ingest, read_tiles
from .render import render_tiles
from .shading import (
    IgorShading,
    ObliqueShading,
    ShadingDefinition,
    SlopeShading,
    compute_hillshade,
    compute_slope_aspect,
    shade,
)
from .shading_presets import PRESETS, get_preset, list_presets
from .sources import LazIndexSource, NoSource, resolve_sources
from .spatial_index import LazIndex, build_index
from .tile_grid import PointWithHeight, TileMeta, build_tile_grid

__all__ = [
    # Configuration
    "PipelineConfig",
    # Errors
    "PipelineError",
    "ConfigError",
    "ProjectionError",
    "SpatialIndexError",
    "ArchiveReadError",
    # Grid
    "BoundingBox",
    "TileId",
    "TileMeta",
    "PointWithHeight",
    "build_tile_grid",
    # Sources and ingestion
    "NoSource",
    "LazIndexSource",
    "resolve_sources",
    "LazIndex",
    "build_index",
    "IngestStats",
    "ingest",
    "read_tiles",
    # Shading
    "IgorShading",
    "ObliqueShading",
    "SlopeShading",
    "ShadingDefinition",
    "compute_slope_aspect",
    "compute_hillshade",
    "shade",
    "PRESETS",
    "get_preset",
    "list_presets",
    # Rendering
    "render_tiles",
]
__version__ = "0.1.0"
