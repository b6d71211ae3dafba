"""
Exception hierarchy for the LiDAR hillshade pipeline.

Configuration and environment failures (bad options, unreadable spatial
index, unsupported CRS pair) are fatal. Archive read failures are fatal
by default and can be downgraded to skip-and-count by the ingestion
engine's ``on_error="skip"`` policy.
"""

from pathlib import Path
from typing import Union


class PipelineError(Exception):
    """Base exception for pipeline errors."""
    pass


class ConfigError(PipelineError, ValueError):
    """Invalid configuration value or malformed shading definition."""
    pass


class ProjectionError(PipelineError):
    """CRS pair unsupported or coordinate transformation failed."""
    pass


class SpatialIndexError(PipelineError):
    """Spatial index could not be opened or queried."""
    pass


class ArchiveReadError(PipelineError):
    """A point archive could not be opened or decoded."""

    def __init__(self, path: Union[str, Path], message: str = ""):
        self.path = str(path)
        super().__init__(f"Failed to read {self.path}: {message}")
