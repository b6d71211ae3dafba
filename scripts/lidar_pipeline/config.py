"""
Pipeline configuration dataclass for LiDAR hillshade rendering.

Centralizes all tunable parameters: the requested extent and tile grid,
the point source and its CRS pair, shading layers, and output settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .archive import DEFAULT_CHUNK_SIZE
from .errors import ConfigError
from .geometry import BoundingBox
from .projection import ARCHIVE_CRS, DEFAULT_DENSIFY_POINTS, WORKING_CRS
from .shading import IgorShading, ShadingDefinition
from .sources import NoSource, SourceSpec


@dataclass
class GridConfig:
    """Requested extent and tiling."""

    # Extent in EPSG:3857 meters (min_x, min_y, max_x, max_y)
    bbox: BoundingBox = field(
        default_factory=lambda: BoundingBox(1_900_000.0, 6_120_000.0, 1_910_000.0, 6_130_000.0)
    )
    zoom: int = 15
    supertile_zoom_offset: int = 0
    tile_size: int = 256
    buffer: int = 32  # Overlap margin in output pixels

    def __post_init__(self) -> None:
        if self.tile_size <= 0:
            raise ConfigError(f"tile_size must be positive, got {self.tile_size}")
        if self.buffer < 0:
            raise ConfigError(f"buffer must not be negative, got {self.buffer}")
        if not 0 <= self.supertile_zoom_offset <= self.zoom:
            raise ConfigError(
                f"supertile_zoom_offset must be within 0..{self.zoom}, "
                f"got {self.supertile_zoom_offset}"
            )

    @property
    def supertile_size(self) -> int:
        """Pixel size of one supertile image."""
        return self.tile_size << self.supertile_zoom_offset


@dataclass
class SourceConfig:
    """Point source and ingestion settings."""

    source: SourceSpec = field(default_factory=NoSource)
    working_crs: str = WORKING_CRS
    archive_crs: str = ARCHIVE_CRS
    densify_pts: int = DEFAULT_DENSIFY_POINTS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    # "raise" aborts on the first unreadable archive, "skip" counts and continues
    on_error: Literal["raise", "skip"] = "raise"

    def __post_init__(self) -> None:
        if self.on_error not in ("raise", "skip"):
            raise ConfigError(f"on_error must be 'raise' or 'skip', got {self.on_error!r}")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")


@dataclass
class ShadingConfig:
    """Shading layers and tone adjustments."""

    shadings: list[ShadingDefinition] = field(
        default_factory=lambda: [ShadingDefinition(IgorShading(azimuth=315.0), 0x000000FF)]
    )
    contrast: float = 1.0
    brightness: float = 0.0
    z_factor: float = 1.0

    def __post_init__(self) -> None:
        if not self.shadings:
            raise ConfigError("At least one shading definition is required")


@dataclass
class OutputConfig:
    """Output tile settings."""

    format: Literal["png", "jpeg", "webp"] = "png"
    quality: int = 90  # For lossy formats
    output_dir: Path = field(default_factory=lambda: Path("tiles"))
    render_empty: bool = False  # Write tiles that received no points


@dataclass
class PipelineConfig:
    """Master configuration for the hillshade pipeline."""

    grid: GridConfig = field(default_factory=GridConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    shading: ShadingConfig = field(default_factory=ShadingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Processing
    workers: int = 4

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
