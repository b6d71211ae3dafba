#!/usr/bin/env python3
"""Pytest configuration and shared fixtures."""
import sqlite3
import sys
import tempfile
from pathlib import Path

import laspy
import numpy as np
import pytest

# Add scripts directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lidar_pipeline.archive import PointChunk


class IdentityTransformer:
    """Stand-in for a pyproj Transformer between identical CRSs."""

    def transform(self, xx, yy):
        return xx, yy


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def identity_transformer():
    return IdentityTransformer()


@pytest.fixture
def identity_factory():
    """Transformer factory for ingestion worker pools."""
    return IdentityTransformer


def _make_chunk(points):
    """Build a PointChunk from (x, y, z, classification) tuples."""
    if not points:
        empty = np.empty(0, dtype=np.float64)
        return PointChunk(empty, empty, empty, np.empty(0, dtype=np.uint8))
    x, y, z, cls = zip(*points)
    return PointChunk(
        x=np.array(x, dtype=np.float64),
        y=np.array(y, dtype=np.float64),
        z=np.array(z, dtype=np.float64),
        classification=np.array(cls, dtype=np.uint8),
    )


@pytest.fixture
def make_chunk():
    """Factory building PointChunks from (x, y, z, classification) tuples."""
    return _make_chunk


@pytest.fixture
def write_las(temp_dir):
    """Factory writing (x, y, z, classification) tuples to a LAS file."""

    def _write(name, points):
        x, y, z, cls = (np.array(v) for v in zip(*points))

        header = laspy.LasHeader(point_format=3, version="1.2")
        header.offsets = np.array([np.floor(x.min()), np.floor(y.min()), np.floor(z.min())])
        header.scales = np.array([0.01, 0.01, 0.01])

        las = laspy.LasData(header)
        las.x = x
        las.y = y
        las.z = z
        las.classification = cls.astype(np.uint8)

        path = temp_dir / name
        las.write(str(path))
        return path

    return _write


@pytest.fixture
def corrupt_laz(write_las):
    """Factory writing a 5000-point LAZ file truncated halfway through its points."""

    def _write(name="corrupt.laz"):
        points = [(float(i % 100), float(i // 100), float(i % 7), 2) for i in range(5000)]
        path = write_las(name, points)
        with laspy.open(str(path)) as reader:
            start = reader.header.offset_to_point_data
        data = path.read_bytes()
        path.write_bytes(data[: start + (len(data) - start) // 2])
        return path

    return _write


@pytest.fixture
def index_db(temp_dir):
    """Factory creating a laz_index database from (file, min_x, min_y, max_x, max_y) rows."""

    def _create(rows, name="index.sqlite"):
        path = temp_dir / name
        conn = sqlite3.connect(path)
        with conn:
            conn.execute(
                "CREATE TABLE laz_index (file TEXT PRIMARY KEY, "
                "min_x REAL, min_y REAL, max_x REAL, max_y REAL)"
            )
            conn.executemany("INSERT INTO laz_index VALUES (?, ?, ?, ?, ?)", rows)
        conn.close()
        return path

    return _create
