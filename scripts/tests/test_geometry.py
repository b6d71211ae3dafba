#!/usr/bin/env python3
"""Tests for bounding boxes and Web Mercator tile math."""
import dataclasses
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from lidar_pipeline.geometry import (
    MERCATOR_HALF_WORLD,
    BoundingBox,
    TileId,
    covered_tiles,
    pixels_per_meter,
    tile_size_meters,
)


class TestBoundingBox:
    """Tests for BoundingBox."""

    def test_extended_grows_all_sides(self):
        """Test {0,0,10,10} buffered by 2 becomes {-2,-2,12,12}."""
        bbox = BoundingBox(0, 0, 10, 10).extended(2)
        assert bbox == BoundingBox(-2, -2, 12, 12)

    def test_buffered_box_accepts_overlap_point(self):
        """Test (11, 11) is only inside the buffered box."""
        native = BoundingBox(0, 0, 10, 10)
        buffered = native.extended(2)
        assert buffered.contains(11, 11)
        assert not native.contains(11, 11)

    def test_contains_is_inclusive(self):
        bbox = BoundingBox(0, 0, 10, 10)
        assert bbox.contains(0, 0)
        assert bbox.contains(10, 10)
        assert not bbox.contains(10.001, 5)

    def test_extended_returns_new_box(self):
        bbox = BoundingBox(0, 0, 10, 10)
        bbox.extended(5)
        assert bbox == BoundingBox(0, 0, 10, 10)

    def test_is_immutable(self):
        bbox = BoundingBox(0, 0, 10, 10)
        with pytest.raises(dataclasses.FrozenInstanceError):
            bbox.min_x = 3

    def test_overlap_true(self):
        """Test archive box {5,5,15,15} overlaps query {0,0,10,10}."""
        archive = BoundingBox(5, 5, 15, 15)
        assert BoundingBox(0, 0, 10, 10).overlaps(archive)

    def test_overlap_false(self):
        """Test archive box {5,5,15,15} misses query {20,20,30,30}."""
        archive = BoundingBox(5, 5, 15, 15)
        assert not BoundingBox(20, 20, 30, 30).overlaps(archive)

    def test_touching_edges_overlap(self):
        assert BoundingBox(0, 0, 10, 10).overlaps(BoundingBox(10, 0, 20, 10))

    def test_from_string(self):
        bbox = BoundingBox.from_string("1.5,2,3.5,4")
        assert bbox == BoundingBox(1.5, 2, 3.5, 4)
        assert bbox.width == 2
        assert bbox.height == 2

    def test_from_string_rejects_wrong_count(self):
        with pytest.raises(ValueError):
            BoundingBox.from_string("1,2,3")


class TestTileMath:
    """Tests for tile coordinates and bounds."""

    def test_zoom_zero_covers_world(self):
        bounds = TileId(0, 0, 0).bounds()
        assert bounds.min_x == pytest.approx(-MERCATOR_HALF_WORLD)
        assert bounds.max_x == pytest.approx(MERCATOR_HALF_WORLD)
        assert bounds.min_y == pytest.approx(-MERCATOR_HALF_WORLD)
        assert bounds.max_y == pytest.approx(MERCATOR_HALF_WORLD)

    def test_tile_origin_is_top_left(self):
        """Test y grows southward: tile (1, 0, 0) is the north-west quadrant."""
        bounds = TileId(1, 0, 0).bounds()
        assert bounds.min_x == pytest.approx(-MERCATOR_HALF_WORLD)
        assert bounds.max_x == pytest.approx(0, abs=1e-6)
        assert bounds.min_y == pytest.approx(0, abs=1e-6)
        assert bounds.max_y == pytest.approx(MERCATOR_HALF_WORLD)

    def test_tile_size_halves_per_zoom(self):
        assert tile_size_meters(5) == pytest.approx(2 * tile_size_meters(6))

    def test_pixels_per_meter(self):
        assert pixels_per_meter(0, 256) == pytest.approx(256 / (2 * MERCATOR_HALF_WORLD))
        assert pixels_per_meter(10, 512) == pytest.approx(2 * pixels_per_meter(10, 256))

    def test_children(self):
        children = list(TileId(3, 2, 5).children(1))
        assert children == [
            TileId(4, 4, 10),
            TileId(4, 5, 10),
            TileId(4, 4, 11),
            TileId(4, 5, 11),
        ]

    def test_str(self):
        assert str(TileId(15, 17000, 11000)) == "15/17000/11000"


class TestCoveredTiles:
    """Tests for covered_tiles."""

    def test_world_at_zoom_one(self):
        world = TileId(0, 0, 0).bounds()
        tiles = list(covered_tiles(world, 1))
        assert len(tiles) == 4
        assert set(tiles) == {TileId(1, x, y) for x in range(2) for y in range(2)}

    def test_small_box_inside_one_tile(self):
        tiles = list(covered_tiles(BoundingBox(100, 100, 900, 900), 15))
        assert tiles == [TileId(15, 16384, 16383)]

    def test_box_spanning_tile_boundary(self):
        size = tile_size_meters(15)
        bbox = BoundingBox(size - 10, 100, size + 10, 200)
        tiles = list(covered_tiles(bbox, 15))
        assert [t.x for t in tiles] == [16384, 16385]

    def test_every_tile_intersects_box(self):
        bbox = BoundingBox(1_900_000, 6_120_000, 1_930_000, 6_135_000)
        for tile in covered_tiles(bbox, 13):
            assert tile.bounds().overlaps(bbox)

    def test_ordered_by_x_then_y(self):
        bbox = BoundingBox(1_900_000, 6_120_000, 1_930_000, 6_135_000)
        tiles = list(covered_tiles(bbox, 13))
        assert tiles == sorted(tiles, key=lambda t: (t.x, t.y))
