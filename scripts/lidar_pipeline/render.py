"""
Tile rendering and I/O management.

Turns ingested supertiles into hillshade images, splits each supertile
into output-zoom tiles and writes them as ``{z}/{x}/{y}.{format}``.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from PIL import Image
from tqdm import tqdm

from .config import OutputConfig, PipelineConfig
from .geometry import TileId
from .ingest import ChunkReader, read_tiles
from .rasterize import rasterize_tile
from .shading import compute_hillshade
from .tile_grid import TileMeta


def render_supertile(tile_meta: TileMeta, config: PipelineConfig) -> NDArray[np.uint8]:
    """Render one supertile to an RGB image, north up.

    Returns:
        Array of shape (supertile_size, supertile_size, 3)
    """
    size = config.grid.supertile_size
    elevation = rasterize_tile(tile_meta, size)
    shading = config.shading

    return compute_hillshade(
        elevation,
        size + 2,
        size + 2,
        shading.shadings,
        z_factor=shading.z_factor,
        contrast=shading.contrast,
        brightness=shading.brightness,
    )


def split_supertile(
    tile: TileId,
    image: NDArray[np.uint8],
    levels: int,
    tile_size: int,
) -> list[tuple[TileId, NDArray[np.uint8]]]:
    """Cut a supertile image into its ``2**levels`` squared children."""
    parts = []
    for child in tile.children(levels):
        col = child.x - (tile.x << levels)
        row = child.y - (tile.y << levels)
        crop = image[
            row * tile_size:(row + 1) * tile_size,
            col * tile_size:(col + 1) * tile_size,
        ]
        parts.append((child, crop))
    return parts


def tile_path(output: OutputConfig, tile: TileId) -> Path:
    return output.output_dir / str(tile.zoom) / str(tile.x) / f"{tile.y}.{output.format}"


def save_tile(image: NDArray[np.uint8], path: Path, output: OutputConfig) -> Path:
    """Encode and write one tile image."""
    path.parent.mkdir(parents=True, exist_ok=True)

    img = Image.fromarray(np.ascontiguousarray(image))
    if output.format == "png":
        img.save(path, "PNG", optimize=True)
    elif output.format == "jpeg":
        img.save(path, "JPEG", quality=output.quality)
    else:
        img.save(path, "WEBP", quality=output.quality)

    return path


def render_and_save(tile_meta: TileMeta, config: PipelineConfig) -> list[Path]:
    """Render a supertile and write all of its output tiles."""
    image = render_supertile(tile_meta, config)
    parts = split_supertile(
        tile_meta.tile,
        image,
        config.grid.supertile_zoom_offset,
        config.grid.tile_size,
    )
    return [
        save_tile(part, tile_path(config.output, tile), config.output)
        for tile, part in parts
    ]


def render_tiles(
    config: Optional[PipelineConfig] = None,
    reader: Optional[ChunkReader] = None,
    progress: bool = True,
) -> list[Path]:
    """Ingest points and render every tile of the configured extent.

    Ingestion errors abort the run. A tile that fails to render is
    reported and skipped.

    Args:
        config: Pipeline configuration
        reader: Chunk reader override, see ``read_tiles``
        progress: Show progress bars

    Returns:
        List of paths to written tiles
    """
    config = config or PipelineConfig()

    tile_metas, _ = read_tiles(config, reader=reader, progress=progress)

    if not config.output.render_empty:
        tile_metas = [t for t in tile_metas if len(t) > 0]

    paths: list[Path] = []
    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        futures = {
            executor.submit(render_and_save, tile_meta, config): tile_meta
            for tile_meta in tile_metas
        }

        iterator = tqdm(
            as_completed(futures),
            total=len(futures),
            desc="Rendering tiles",
            disable=not progress,
        )

        for future in iterator:
            try:
                paths.extend(future.result())
            except Exception as e:
                tile_meta = futures[future]
                print(f"Error rendering {tile_meta.tile}: {e}")

    print(f"Wrote {len(paths)} tiles to {config.output.output_dir}")
    return paths
