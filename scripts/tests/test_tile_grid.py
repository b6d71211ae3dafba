#!/usr/bin/env python3
"""Tests for tile grid construction and point buffers."""
import sys
import threading
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from lidar_pipeline.geometry import BoundingBox, TileId, pixels_per_meter
from lidar_pipeline.tile_grid import (
    PointWithHeight,
    TileMeta,
    buffer_distance,
    build_tile_grid,
)


EXTENT = BoundingBox(1_900_000, 6_120_000, 1_910_000, 6_130_000)


class TestBuildTileGrid:
    """Tests for build_tile_grid."""

    def test_buffered_bbox_strictly_contains_native(self):
        for tile_meta in build_tile_grid(EXTENT, 15, 0, 256, 32):
            native = tile_meta.native_bbox
            assert tile_meta.bbox.min_x < native.min_x
            assert tile_meta.bbox.min_y < native.min_y
            assert tile_meta.bbox.max_x > native.max_x
            assert tile_meta.bbox.max_y > native.max_y

    def test_buffer_distance_in_meters(self):
        """Test margin equals buffer pixels over pixels per meter."""
        margin = 32 / pixels_per_meter(15, 256)
        tile_meta = build_tile_grid(EXTENT, 15, 0, 256, 32)[0]
        assert tile_meta.native_bbox.min_x - tile_meta.bbox.min_x == pytest.approx(margin)
        assert tile_meta.bbox.max_y - tile_meta.native_bbox.max_y == pytest.approx(margin)

    def test_supertile_offset_coarsens_zoom(self):
        tile_metas = build_tile_grid(EXTENT, 15, 2, 256, 32)
        assert tile_metas
        assert all(t.tile.zoom == 13 for t in tile_metas)

    def test_supertile_keeps_ground_margin(self):
        """Test the buffer is expressed at output zoom, not supertile zoom."""
        plain = build_tile_grid(EXTENT, 15, 0, 256, 32)[0]
        super_ = build_tile_grid(EXTENT, 15, 2, 256, 32)[0]
        plain_margin = plain.native_bbox.min_x - plain.bbox.min_x
        super_margin = super_.native_bbox.min_x - super_.bbox.min_x
        assert super_margin == pytest.approx(plain_margin)

    def test_fewer_supertiles_than_tiles(self):
        assert len(build_tile_grid(EXTENT, 15, 2, 256, 32)) < len(build_tile_grid(EXTENT, 15, 0, 256, 32))

    def test_buffers_start_empty(self):
        assert all(len(t) == 0 for t in build_tile_grid(EXTENT, 15, 0, 256, 32))

    def test_deterministic(self):
        first = [(t.tile, t.bbox) for t in build_tile_grid(EXTENT, 14, 1, 256, 16)]
        second = [(t.tile, t.bbox) for t in build_tile_grid(EXTENT, 14, 1, 256, 16)]
        assert first == second

    def test_buffer_distance_zero(self):
        assert buffer_distance(15, 256, 0) == 0


class TestTileMeta:
    """Tests for TileMeta point buffers."""

    def make_tile(self):
        return TileMeta(TileId(15, 16384, 16383), BoundingBox(-2, -2, 12, 12))

    def test_bbox_is_read_only(self):
        tile_meta = self.make_tile()
        with pytest.raises(AttributeError):
            tile_meta.bbox = BoundingBox(0, 0, 1, 1)

    def test_append_and_snapshot(self):
        tile_meta = self.make_tile()
        tile_meta.append(PointWithHeight(1.0, 2.0, 3.0))
        snapshot = tile_meta.points
        tile_meta.append(PointWithHeight(4.0, 5.0, 6.0))

        assert snapshot == (PointWithHeight(1.0, 2.0, 3.0),)
        assert len(tile_meta) == 2

    def test_as_array(self):
        tile_meta = self.make_tile()
        assert tile_meta.as_array().shape == (0, 3)

        tile_meta.extend([PointWithHeight(1.0, 2.0, 3.0), PointWithHeight(4.0, 5.0, 6.0)])
        array = tile_meta.as_array()
        assert array.shape == (2, 3)
        assert array[1].tolist() == [4.0, 5.0, 6.0]

    def test_concurrent_appends_are_not_lost(self):
        tile_meta = self.make_tile()
        threads_count = 8
        per_thread = 500

        def worker(offset):
            for i in range(per_thread):
                tile_meta.append(PointWithHeight(float(offset), float(i), 0.0))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(tile_meta) == threads_count * per_thread
        assert len(set(tile_meta.points)) == threads_count * per_thread
