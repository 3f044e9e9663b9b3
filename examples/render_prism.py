#!/usr/bin/env python3
"""Render the dispersive prism scene.

A flint glass prism and two diamond spheres stand on a dark plastic floor,
lit by two D65 lamps. White light entering the gems is split into spectral
colors, which only a spectral renderer reproduces.

Usage:
    python examples/render_prism.py [options]

Options:
    --width WIDTH           Image width in pixels (default: 512)
    --height HEIGHT         Image height in pixels (default: 300)
    --samples SAMPLES       Pixel samples per spectral bin (default: 16)
    --bins BINS             Spectral bins (default: 50)
    --bounces BOUNCES       Scatter events per path (default: 16)
    --workers WORKERS       Tile worker threads (default: 4)
    --tile-size SIZE        Tile edge length in pixels (default: 32)
    --seed SEED             Random seed (default: 0)
    --backend BACKEND       Taichi backend: auto, cpu or gpu (default: auto)
    --output OUTPUT         Output file path (default: prism.png)
    --log-level LEVEL       Logging level (default: WARNING)
    --quiet                 Suppress progress output

Example:
    python examples/render_prism.py --width 256 --height 150 --samples 4
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from prismatic.core.backend import init_taichi
from prismatic.core.config import RenderConfig
from prismatic.core.renderer import CancelToken, TileRenderer
from prismatic.errors import PrismaticError
from prismatic.logging_config import setup_logging
from prismatic.preview import PngWriter
from prismatic.scene import prism_scene


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the dispersive prism scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=512, help="Image width in pixels (default: 512)")
    parser.add_argument("--height", type=int, default=300, help="Image height in pixels (default: 300)")
    parser.add_argument(
        "--samples",
        type=int,
        default=16,
        help="Pixel samples per spectral bin (default: 16)",
    )
    parser.add_argument("--bins", type=int, default=50, help="Spectral bins (default: 50)")
    parser.add_argument("--bounces", type=int, default=16, help="Scatter events per path (default: 16)")
    parser.add_argument("--workers", type=int, default=4, help="Tile worker threads (default: 4)")
    parser.add_argument(
        "--tile-size",
        type=int,
        default=32,
        help="Tile edge length in pixels (default: 32)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--backend",
        choices=["auto", "cpu", "gpu"],
        default="auto",
        help="Taichi backend (default: auto)",
    )
    parser.add_argument("--output", type=str, default="prism.png", help="Output file path (default: prism.png)")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_prism(
    config: RenderConfig,
    width: int = 512,
    height: int = 300,
    output_path: str = "prism.png",
    quiet: bool = False,
) -> Path:
    """Render the prism scene and save it as a PNG.

    Ctrl-C stops dispatching new tiles; the partial image is still saved.

    Returns:
        Path to the saved image file.
    """
    if not quiet:
        print(f"Creating prism scene ({width}x{height})...")
    scene = prism_scene(width=width, height=height)

    renderer = TileRenderer(scene, config)
    cancel = CancelToken()

    if not quiet:
        print(f"Rendering {len(renderer.tiles)} tiles, {config.paths_per_pixel} paths per pixel...")

    start_time = time.time()
    events = renderer.render_progressive(cancel)
    try:
        for event in events:
            if not quiet:
                elapsed = time.time() - start_time
                print(
                    f"\r  Progress: {event.completed}/{event.total} tiles "
                    f"({event.percent}%) - {elapsed:.1f}s",
                    end="",
                    flush=True,
                )
    except KeyboardInterrupt:
        cancel.cancel()
        # Waits for the tiles still running and finalizes the result
        events.close()
        if not quiet:
            print("\n  Cancelled, saving partial image")

    if not quiet:
        print()  # Newline after progress

    result = renderer.result
    output_file = Path(output_path)
    writer = PngWriter(output_file, tone_map="reinhard")
    writer.write(result.rgb, result.width, result.height)

    if not quiet:
        stats = result.stats
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {stats.elapsed:.2f}s ({stats.paths} paths, {stats.retries} retries)")
        if stats.nan_samples:
            print(f"Discarded {stats.nan_samples} non-finite samples")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    setup_logging(args.log_level)

    backend = init_taichi(args.backend)
    if not args.quiet:
        print(f"Using {backend.upper()} backend")

    try:
        config = RenderConfig(
            pixel_samples=args.samples,
            spectrum_bins=args.bins,
            bounces=args.bounces,
            tile_size=args.tile_size,
            workers=args.workers,
            seed=args.seed,
        )
        render_prism(
            config,
            width=args.width,
            height=args.height,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except PrismaticError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
