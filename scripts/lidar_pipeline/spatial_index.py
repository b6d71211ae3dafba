"""
SQLite spatial index of point archives.

The index is a single table mapping archive file paths to their extent
in the archive CRS:

    laz_index(file TEXT PRIMARY KEY, min_x REAL, min_y REAL, max_x REAL, max_y REAL)

Usage:
    from .spatial_index import build_index, LazIndex

    build_index("index.sqlite", Path("laz").glob("*.laz"))

    with LazIndex.open("index.sqlite") as index:
        files = index.query(bbox)
"""

import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Union

from tqdm import tqdm

from .archive import read_header_bounds
from .errors import SpatialIndexError
from .geometry import BoundingBox


TABLE_NAME = "laz_index"

OVERLAP_QUERY = (
    f"SELECT file FROM {TABLE_NAME} "
    "WHERE max_x >= :min_x AND min_x <= :max_x AND max_y >= :min_y AND min_y <= :max_y"
)


class LazIndex:
    """Read-only view of a spatial index database."""

    def __init__(self, conn: sqlite3.Connection, path: Path):
        self._conn = conn
        self.path = path

    @classmethod
    def open(cls, path: Union[str, Path]) -> "LazIndex":
        """Open an existing index read-only.

        Raises:
            SpatialIndexError: If the database is missing or unreadable
        """
        path = Path(path)
        if not path.is_file():
            raise SpatialIndexError(f"Spatial index not found: {path}")
        try:
            conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise SpatialIndexError(f"Cannot open spatial index {path}: {e}") from e
        return cls(conn, path)

    def query(self, bbox: BoundingBox) -> list[str]:
        """Return every archive whose extent overlaps ``bbox``.

        Raises:
            SpatialIndexError: If the query fails (e.g. missing table)
        """
        params = {
            "min_x": bbox.min_x,
            "min_y": bbox.min_y,
            "max_x": bbox.max_x,
            "max_y": bbox.max_y,
        }
        try:
            rows = self._conn.execute(OVERLAP_QUERY, params).fetchall()
        except sqlite3.Error as e:
            raise SpatialIndexError(f"Spatial index query failed on {self.path}: {e}") from e
        return [row[0] for row in rows]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "LazIndex":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def build_index(
    db_path: Union[str, Path],
    files: Iterable[Union[str, Path]],
    progress: bool = True,
) -> int:
    """Create a spatial index from archive headers.

    Any existing index table is replaced; the index is always rebuilt
    from scratch.

    Args:
        db_path: SQLite database to create or overwrite
        files: LAS/LAZ files to index
        progress: Show progress bar

    Returns:
        Number of indexed files
    """
    files = [Path(f) for f in files]

    rows: list[tuple[str, float, float, float, float]] = []
    for path in tqdm(files, desc="Scanning headers", disable=not progress):
        min_x, min_y, max_x, max_y = read_header_bounds(path)
        rows.append((str(path.resolve()), min_x, min_y, max_x, max_y))

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn: Optional[sqlite3.Connection] = None
    try:
        conn = sqlite3.connect(db_path)
        with conn:
            conn.execute(f"DROP TABLE IF EXISTS {TABLE_NAME}")
            conn.execute(f"""
                CREATE TABLE {TABLE_NAME} (
                    file  TEXT PRIMARY KEY,
                    min_x REAL NOT NULL,
                    min_y REAL NOT NULL,
                    max_x REAL NOT NULL,
                    max_y REAL NOT NULL
                )
            """)
            conn.executemany(
                f"INSERT INTO {TABLE_NAME} (file, min_x, min_y, max_x, max_y) "
                "VALUES (?, ?, ?, ?, ?)",
                rows,
            )
    except sqlite3.Error as e:
        raise SpatialIndexError(f"Cannot write spatial index {db_path}: {e}") from e
    finally:
        if conn is not None:
            conn.close()

    return len(rows)
