#!/usr/bin/env python3
"""Tests for source resolution and bbox reprojection."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from lidar_pipeline.errors import ProjectionError, SpatialIndexError
from lidar_pipeline.geometry import BoundingBox
from lidar_pipeline.projection import make_transformer, transform_bbox
from lidar_pipeline.sources import LazIndexSource, NoSource, resolve_sources


# Around Prague, in EPSG:3857 meters
PRAGUE = BoundingBox(1_600_000, 6_455_000, 1_610_000, 6_465_000)


class TestTransformBbox:
    """Tests for densified bbox reprojection."""

    def test_identity(self):
        bbox = BoundingBox(0, 0, 1000, 1000)
        result = transform_bbox(bbox, "EPSG:3857", "EPSG:3857")
        assert result.as_tuple() == pytest.approx(bbox.as_tuple())

    def test_archive_bbox_contains_transformed_points(self):
        """Test corners, edge midpoints and centre all land inside the result."""
        archive_bbox = transform_bbox(PRAGUE, "EPSG:3857", "EPSG:8353")
        transformer = make_transformer("EPSG:3857", "EPSG:8353")

        mid_x = (PRAGUE.min_x + PRAGUE.max_x) / 2
        mid_y = (PRAGUE.min_y + PRAGUE.max_y) / 2
        samples = [
            (PRAGUE.min_x, PRAGUE.min_y),
            (PRAGUE.max_x, PRAGUE.max_y),
            (mid_x, PRAGUE.min_y),
            (PRAGUE.max_x, mid_y),
            (mid_x, mid_y),
        ]
        for x, y in samples:
            tx, ty = transformer.transform(x, y)
            assert archive_bbox.contains(tx, ty)

    def test_unknown_crs(self):
        with pytest.raises(ProjectionError):
            transform_bbox(PRAGUE, "EPSG:3857", "EPSG:999999")


class TestResolveSources:
    """Tests for resolve_sources."""

    def test_no_source(self):
        assert resolve_sources(NoSource(), PRAGUE) is None

    def test_index_source(self, index_db):
        path = index_db([
            ("inside.laz", 100, 100, 200, 200),
            ("outside.laz", 5000, 5000, 6000, 6000),
        ])
        resolved = resolve_sources(
            LazIndexSource(path),
            BoundingBox(0, 0, 1000, 1000),
            working_crs="EPSG:3857",
            archive_crs="EPSG:3857",
        )
        assert resolved.files == ["inside.laz"]
        assert resolved.archive_bbox.as_tuple() == pytest.approx((0, 0, 1000, 1000))

    def test_missing_index(self, temp_dir):
        with pytest.raises(SpatialIndexError):
            resolve_sources(LazIndexSource(temp_dir / "missing.sqlite"), PRAGUE)

    def test_unsupported_source(self):
        with pytest.raises(TypeError):
            resolve_sources("index.sqlite", PRAGUE)
