"""
Chunked LAS/LAZ point reader.

Streams x, y, z and classification in fixed-size chunks so large
archives never have to be loaded whole. LAZ decompression requires a
laspy backend (lazrs or laszip).
"""

from pathlib import Path
from typing import Iterator, NamedTuple, Union

import laspy
from laspy.errors import LaspyException
import numpy as np
from numpy.typing import NDArray

from .errors import ArchiveReadError


# ASPRS LAS classification code for bare-earth returns
GROUND_CLASSIFICATION = 2

DEFAULT_CHUNK_SIZE = 1_000_000


class PointChunk(NamedTuple):
    """A slice of an archive's point stream, in the archive CRS."""

    x: NDArray[np.float64]
    y: NDArray[np.float64]
    z: NDArray[np.float64]
    classification: NDArray[np.uint8]

    def __len__(self) -> int:
        return len(self.x)


def read_chunks(
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[PointChunk]:
    """Iterate over an archive in chunks of at most ``chunk_size`` points.

    Raises:
        ArchiveReadError: If the file cannot be opened or a chunk cannot
            be decoded
    """
    try:
        reader = laspy.open(path)
    except (OSError, ValueError, RuntimeError, LaspyException) as e:
        raise ArchiveReadError(path, str(e)) from e

    with reader:
        chunks = reader.chunk_iterator(chunk_size)
        while True:
            try:
                points = next(chunks)
            except StopIteration:
                return
            except (OSError, ValueError, RuntimeError, LaspyException) as e:
                raise ArchiveReadError(path, str(e)) from e

            yield PointChunk(
                x=np.asarray(points.x, dtype=np.float64),
                y=np.asarray(points.y, dtype=np.float64),
                z=np.asarray(points.z, dtype=np.float64),
                classification=np.asarray(points.classification, dtype=np.uint8),
            )


def read_header_bounds(path: Union[str, Path]) -> tuple[float, float, float, float]:
    """Read (min_x, min_y, max_x, max_y) from the header only."""
    try:
        with laspy.open(path) as reader:
            header = reader.header
            return (
                float(header.mins[0]),
                float(header.mins[1]),
                float(header.maxs[0]),
                float(header.maxs[1]),
            )
    except (OSError, ValueError, RuntimeError, LaspyException) as e:
        raise ArchiveReadError(path, str(e)) from e
