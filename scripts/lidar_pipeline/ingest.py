"""
Parallel ingestion of archive points into buffered tiles.

Archives are processed independently on a fixed-size thread pool. Each
worker thread owns one reverse transformer (archive CRS -> working CRS),
created by the pool initializer and reused for every point it handles.
Points are filtered and reprojected a chunk at a time and staged per
tile. Once an archive has been read to the end, its staged points are
appended to every tile whose buffered bbox contains them under that
tile's own lock, so a skipped archive leaves no points behind.

Usage:
    from .ingest import read_tiles

    tile_metas, stats = read_tiles(config)
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Iterator, Literal, Optional, Protocol, Sequence

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from .archive import GROUND_CLASSIFICATION, PointChunk, read_chunks
from .config import PipelineConfig
from .errors import ArchiveReadError
from .geometry import BoundingBox
from .projection import make_transformer
from .sources import resolve_sources
from .tile_grid import PointWithHeight, TileMeta, build_tile_grid


class PointTransformer(Protocol):
    """Anything with pyproj's vectorized ``transform(xx, yy)``."""

    def transform(self, xx, yy): ...


ChunkReader = Callable[[str], Iterable[PointChunk]]
TransformerFactory = Callable[[], PointTransformer]


@dataclass
class IngestStats:
    """Counters for one ingestion run."""

    files_read: int = 0
    files_failed: int = 0
    points_read: int = 0
    ground_points: int = 0
    points_accepted: int = 0
    tile_appends: int = 0

    def merge(self, other: "IngestStats") -> None:
        self.files_read += other.files_read
        self.files_failed += other.files_failed
        self.points_read += other.points_read
        self.ground_points += other.ground_points
        self.points_accepted += other.points_accepted
        self.tile_appends += other.tile_appends


_worker = threading.local()


def _init_worker(transformer_factory: TransformerFactory) -> None:
    """Pool initializer: build this thread's transformer once."""
    _worker.transformer = transformer_factory()


def _inside(bbox: BoundingBox, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.bool_]:
    """Vectorized inclusive ``BoundingBox.contains``."""
    return (x >= bbox.min_x) & (x <= bbox.max_x) & (y >= bbox.min_y) & (y <= bbox.max_y)


def _points_of(x, y, z) -> Iterator[PointWithHeight]:
    for px, py, pz in zip(x.tolist(), y.tolist(), z.tolist()):
        yield PointWithHeight(px, py, pz)


def bucket_chunk(
    chunk: PointChunk,
    tile_metas: Sequence[TileMeta],
    bbox: BoundingBox,
    archive_bbox: BoundingBox,
    transformer: PointTransformer,
) -> tuple[IngestStats, list[tuple[TileMeta, list[PointWithHeight]]]]:
    """Filter, reproject and bucket one chunk of archive points.

    A point is kept if it is classified as ground, lies in
    ``archive_bbox`` (cheap pre-filter in the archive CRS) and, once
    reprojected, lies in ``bbox``. It then goes to every tile whose
    buffered bbox contains it, possibly several. Tile buffers are not
    touched.

    Returns:
        Tuple of (counters, [(tile_meta, points), ...]) for tiles that
        received at least one point
    """
    stats = IngestStats(points_read=len(chunk))
    batches: list[tuple[TileMeta, list[PointWithHeight]]] = []

    ground = chunk.classification == GROUND_CLASSIFICATION
    stats.ground_points = int(np.count_nonzero(ground))

    keep = ground & _inside(archive_bbox, chunk.x, chunk.y)
    if not keep.any():
        return stats, batches

    xs, ys = transformer.transform(chunk.x[keep], chunk.y[keep])
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    zs = chunk.z[keep]

    in_extent = _inside(bbox, xs, ys)
    xs, ys, zs = xs[in_extent], ys[in_extent], zs[in_extent]
    stats.points_accepted = len(xs)

    for tile_meta in tile_metas:
        in_tile = _inside(tile_meta.bbox, xs, ys)
        count = int(np.count_nonzero(in_tile))
        if count == 0:
            continue
        batches.append((tile_meta, list(_points_of(xs[in_tile], ys[in_tile], zs[in_tile]))))
        stats.tile_appends += count

    return stats, batches


def ingest_chunk(
    chunk: PointChunk,
    tile_metas: Sequence[TileMeta],
    bbox: BoundingBox,
    archive_bbox: BoundingBox,
    transformer: PointTransformer,
) -> IngestStats:
    """Bucket one chunk and append its points to the tile buffers.

    Returns:
        Counters for this chunk
    """
    stats, batches = bucket_chunk(chunk, tile_metas, bbox, archive_bbox, transformer)
    for tile_meta, points in batches:
        tile_meta.extend(points)
    return stats


def _ingest_file(
    path: str,
    tile_metas: Sequence[TileMeta],
    bbox: BoundingBox,
    archive_bbox: BoundingBox,
    reader: ChunkReader,
) -> IngestStats:
    """Read one archive, committing its points only once it fully decodes."""
    transformer = _worker.transformer
    stats = IngestStats(files_read=1)
    pending: dict[TileMeta, list[PointWithHeight]] = {}

    for chunk in reader(path):
        chunk_stats, batches = bucket_chunk(chunk, tile_metas, bbox, archive_bbox, transformer)
        stats.merge(chunk_stats)
        for tile_meta, points in batches:
            pending.setdefault(tile_meta, []).extend(points)

    # A failing archive contributes no points at all
    for tile_meta, points in pending.items():
        tile_meta.extend(points)

    return stats


def _cancel_pending(futures) -> None:
    for pending in futures:
        pending.cancel()


def ingest(
    files: Sequence[str],
    tile_metas: Sequence[TileMeta],
    bbox: BoundingBox,
    archive_bbox: BoundingBox,
    transformer_factory: TransformerFactory,
    reader: ChunkReader = read_chunks,
    workers: int = 4,
    on_error: Literal["raise", "skip"] = "raise",
    progress: bool = True,
) -> IngestStats:
    """Stream all archives into the tile buffers in parallel.

    Any worker failure other than a skipped ``ArchiveReadError`` cancels
    the archives not yet started and propagates.

    Args:
        files: Archive paths to read
        tile_metas: Tile grid; buffers are filled in place
        bbox: Requested extent in the working CRS
        archive_bbox: ``bbox`` reprojected to the archive CRS
        transformer_factory: Builds an archive -> working CRS transformer;
            called once per worker thread
        reader: Yields point chunks for a path
        workers: Thread pool size
        on_error: "raise" to abort on the first unreadable archive,
            "skip" to count it and carry on; a skipped archive adds no
            points even if some of its chunks decoded
        progress: Show progress bar

    Returns:
        Aggregated counters

    Raises:
        ArchiveReadError: With ``on_error="raise"`` when any archive fails
    """
    stats = IngestStats()
    if not files:
        return stats

    with ThreadPoolExecutor(
        max_workers=workers,
        initializer=_init_worker,
        initargs=(transformer_factory,),
    ) as executor:
        futures = {
            executor.submit(_ingest_file, path, tile_metas, bbox, archive_bbox, reader): path
            for path in files
        }

        iterator = tqdm(
            as_completed(futures),
            total=len(futures),
            desc="Reading archives",
            disable=not progress,
        )

        for future in iterator:
            path = futures[future]
            try:
                stats.merge(future.result())
            except ArchiveReadError as e:
                if on_error == "raise":
                    _cancel_pending(futures)
                    raise
                stats.files_failed += 1
                print(f"Skipping {path}: {e}")
            except Exception:
                _cancel_pending(futures)
                raise

    return stats


def read_tiles(
    config: PipelineConfig,
    reader: Optional[ChunkReader] = None,
    progress: bool = True,
) -> tuple[list[TileMeta], IngestStats]:
    """Build the tile grid and fill it from the configured source.

    Args:
        config: Pipeline configuration
        reader: Chunk reader override (defaults to the LAS/LAZ reader with
            the configured chunk size)
        progress: Show progress bar

    Returns:
        Tuple of (tile_metas, stats); buffers are empty for ``NoSource``
    """
    grid = config.grid
    src = config.sources

    tile_metas = build_tile_grid(
        grid.bbox,
        grid.zoom,
        grid.supertile_zoom_offset,
        grid.tile_size,
        grid.buffer,
    )

    resolved = resolve_sources(
        src.source,
        grid.bbox,
        working_crs=src.working_crs,
        archive_crs=src.archive_crs,
        densify_pts=src.densify_pts,
    )
    if resolved is None:
        return tile_metas, IngestStats()

    print(f"Reading {len(resolved.files)} files into {len(tile_metas)} tiles")

    if reader is None:
        reader = partial(read_chunks, chunk_size=src.chunk_size)

    # Fail fast on an unsupported CRS pair before spinning up workers
    make_transformer(src.archive_crs, src.working_crs)

    stats = ingest(
        resolved.files,
        tile_metas,
        grid.bbox,
        resolved.archive_bbox,
        transformer_factory=lambda: make_transformer(src.archive_crs, src.working_crs),
        reader=reader,
        workers=config.workers,
        on_error=src.on_error,
        progress=progress,
    )

    print(
        f"Read {stats.files_read} files, {stats.points_accepted:,} ground points accepted"
        + (f", {stats.files_failed} failed" if stats.files_failed else "")
    )

    return tile_metas, stats
