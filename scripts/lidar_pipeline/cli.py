#!/usr/bin/env python3
"""
Command-line interface for the LiDAR hillshade pipeline.

Usage:
    # Build the spatial index of a LAZ archive directory
    python -m lidar_pipeline.cli index laz_index.sqlite data/laz/*.laz

    # Render hillshade tiles from the index
    python -m lidar_pipeline.cli render \
        --bbox "1900000,6120000,1910000,6130000" --zoom 15 \
        --index laz_index.sqlite --preset swiss --output-dir tiles/

    # Custom shading layers (igor azimuth in degrees, others in radians)
    python -m lidar_pipeline.cli render --bbox ... --index ... \
        --shading igor:315:000000ff --shading slope:1.05:00000040

    # List tiles covering an extent
    python -m lidar_pipeline.cli tiles --bbox ... --zoom 15 --supertile-offset 2

    # List available shading presets
    python -m lidar_pipeline.cli presets
"""

import argparse
import sys
from pathlib import Path
from typing import Optional


def _parse_bbox(value: str):
    from .geometry import BoundingBox

    try:
        return BoundingBox.from_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _build_config(args: argparse.Namespace):
    from .config import GridConfig, OutputConfig, PipelineConfig, ShadingConfig, SourceConfig
    from .shading import parse_shading
    from .shading_presets import get_preset
    from .sources import LazIndexSource, NoSource

    if args.shading:
        shadings = [parse_shading(s) for s in args.shading]
    else:
        shadings = list(get_preset(args.preset).shadings)

    return PipelineConfig(
        grid=GridConfig(
            bbox=args.bbox,
            zoom=args.zoom,
            supertile_zoom_offset=args.supertile_offset,
            tile_size=args.tile_size,
            buffer=args.buffer,
        ),
        sources=SourceConfig(
            source=LazIndexSource(Path(args.index)) if args.index else NoSource(),
            on_error="skip" if args.skip_bad_files else "raise",
        ),
        shading=ShadingConfig(
            shadings=shadings,
            contrast=args.contrast,
            brightness=args.brightness,
            z_factor=args.z_factor,
        ),
        output=OutputConfig(
            format=args.format,
            output_dir=Path(args.output_dir),
            render_empty=args.render_empty,
        ),
        workers=args.workers,
    )


def cmd_render(args: argparse.Namespace) -> int:
    """Render hillshade tiles for an extent."""
    from .errors import PipelineError
    from .render import render_tiles

    try:
        config = _build_config(args)

        grid = config.grid
        print(f"Extent: {grid.bbox}")
        print(f"Zoom: {grid.zoom} (supertile offset {grid.supertile_zoom_offset})")
        print(f"Shading layers: {len(config.shading.shadings)}")
        print(f"Output: {config.output.output_dir}")

        paths = render_tiles(config, progress=not args.quiet)
        print(f"✓ Rendered {len(paths)} tiles")
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130

    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_index(args: argparse.Namespace) -> int:
    """Build the spatial index from archive headers."""
    from .errors import PipelineError
    from .spatial_index import build_index

    files = [Path(f) for f in args.files]
    missing = [f for f in files if not f.is_file()]
    if missing:
        print(f"Error: {len(missing)} file(s) not found, first: {missing[0]}", file=sys.stderr)
        return 1

    try:
        count = build_index(args.database, files, progress=not args.quiet)
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"✓ Indexed {count} files into {args.database}")
    return 0


def cmd_tiles(args: argparse.Namespace) -> int:
    """List the supertiles covering an extent."""
    from .errors import ConfigError
    from .config import GridConfig
    from .tile_grid import build_tile_grid

    try:
        grid = GridConfig(
            bbox=args.bbox,
            zoom=args.zoom,
            supertile_zoom_offset=args.supertile_offset,
            tile_size=args.tile_size,
            buffer=args.buffer,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    tile_metas = build_tile_grid(
        grid.bbox, grid.zoom, grid.supertile_zoom_offset, grid.tile_size, grid.buffer
    )

    for tile_meta in tile_metas:
        print(f"{tile_meta.tile}\t{tile_meta.bbox}")

    per_supertile = 1 << (2 * grid.supertile_zoom_offset)
    print(f"\n{len(tile_metas)} supertiles, {len(tile_metas) * per_supertile} output tiles")
    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    """List available shading presets."""
    from .shading_presets import PRESETS

    print("Available shading presets:\n")
    for key, preset in PRESETS.items():
        print(f"  {key:18} {preset.description}")
        print(f"  {'':18} {len(preset.shadings)} layer(s)")
        print()
    return 0


def _add_grid_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--bbox", type=_parse_bbox, required=True,
        help="Extent in EPSG:3857 as min_x,min_y,max_x,max_y",
    )
    parser.add_argument("--zoom", type=int, required=True, help="Output zoom level")
    parser.add_argument(
        "--supertile-offset", type=int, default=0,
        help="Render supertiles this many zoom levels coarser (default: 0)",
    )
    parser.add_argument("--tile-size", type=int, default=256, help="Tile size in pixels")
    parser.add_argument(
        "--buffer", type=int, default=32,
        help="Tile overlap margin in pixels (default: 32)",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Render hillshade tiles from classified LiDAR point clouds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Hide progress bars")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Render command
    render_parser = subparsers.add_parser("render", help="Render hillshade tiles")
    _add_grid_arguments(render_parser)
    render_parser.add_argument("--index", help="Spatial index database of LAS/LAZ files")
    render_parser.add_argument(
        "--shading", action="append", default=[],
        help="Shading layer, repeatable (igor:AZ_DEG:RRGGBBWW, "
             "oblique:AZ_RAD:ALT_RAD:RRGGBBWW, slope:ALT_RAD:RRGGBBWW)",
    )
    render_parser.add_argument(
        "--preset", default="igor",
        help="Shading preset when no --shading is given (default: igor)",
    )
    render_parser.add_argument("--contrast", type=float, default=1.0, help="Contrast (default: 1.0)")
    render_parser.add_argument("--brightness", type=float, default=0.0, help="Brightness (default: 0.0)")
    render_parser.add_argument("--z-factor", type=float, default=1.0, help="Vertical exaggeration")
    render_parser.add_argument(
        "--format", choices=["png", "jpeg", "webp"], default="png", help="Output format",
    )
    render_parser.add_argument("--output-dir", "-o", default="tiles", help="Output directory")
    render_parser.add_argument(
        "--render-empty", action="store_true", help="Also write tiles without points",
    )
    render_parser.add_argument(
        "--skip-bad-files", action="store_true",
        help="Skip unreadable archives instead of aborting",
    )
    render_parser.add_argument("--workers", "-w", type=int, default=4, help="Parallel workers")

    # Index command
    index_parser = subparsers.add_parser("index", help="Build spatial index of LAS/LAZ files")
    index_parser.add_argument("database", help="SQLite database to create")
    index_parser.add_argument("files", nargs="+", help="LAS/LAZ files to index")

    # Tiles command
    tiles_parser = subparsers.add_parser("tiles", help="List tiles covering an extent")
    _add_grid_arguments(tiles_parser)

    # Presets command
    subparsers.add_parser("presets", help="List available shading presets")

    args = parser.parse_args(argv)

    if args.command == "render":
        return cmd_render(args)
    elif args.command == "index":
        return cmd_index(args)
    elif args.command == "tiles":
        return cmd_tiles(args)
    elif args.command == "presets":
        return cmd_presets(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
