#!/usr/bin/env python3
"""Render a distance-field scene to a PNG file.

Usage:
    python -m examples.render_scene [options]

Options:
    --scene SCENE           tiled_spheres, mandelbulb, ground_plane or
                            sphere_on_plane (default: tiled_spheres)
    --width WIDTH           Image width in pixels (default: 640)
    --height HEIGHT         Image height in pixels (default: 480)
    --samples N             Samples per axis; N*N samples per pixel (default: 2)
    --bounces N             Diffuse bounces per path (default: 2)
    --seed SEED             Random seed (default: derived from the clock)
    --camera-pos X Y Z      Camera position (default: 0 1 6)
    --camera-target X Y Z   Look-at point (default: 0 -1 0)
    --fov DEGREES           Horizontal field of view (default: 60)
    --max-distance D        Maximum ray travel distance (default: 30)
    --output OUTPUT         Output file path (default: render.png)
    --cpu                   Force the CPU backend
    --verbose               Enable debug logging

Example:
    python -m examples.render_scene --scene mandelbulb --samples 4 --seed 1
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_scene")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a signed-distance-field scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", type=str, default="tiled_spheres", help="Scene to render")
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=480, help="Image height in pixels")
    parser.add_argument("--samples", type=int, default=2, help="Samples per axis")
    parser.add_argument("--bounces", type=int, default=2, help="Diffuse bounces per path")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--camera-pos", type=float, nargs=3, default=(0.0, 1.0, 6.0), help="Camera position"
    )
    parser.add_argument(
        "--camera-target", type=float, nargs=3, default=(0.0, -1.0, 0.0), help="Look-at point"
    )
    parser.add_argument("--fov", type=float, default=60.0, help="Horizontal field of view")
    parser.add_argument("--max-distance", type=float, default=30.0, help="Maximum ray distance")
    parser.add_argument("--output", type=str, default="render.png", help="Output file path")
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def render_scene(args: argparse.Namespace) -> Path:
    """Render the scene described by the parsed arguments and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.sdftrace.core.render import RenderConfig, render
    from src.sdftrace.preview.export import save_png

    config = RenderConfig.from_dict(
        {
            "width": args.width,
            "height": args.height,
            "samplesPerAxis": args.samples,
            "bounces": args.bounces,
            "seed": args.seed,
            "cameraPos": args.camera_pos,
            "cameraTarget": args.camera_target,
            "cameraFov": args.fov,
            "maxRayDistance": args.max_distance,
            "scene": args.scene,
        }
    )

    result = render(config)

    output_file = Path(args.output)
    save_png(result, output_file)
    logger.info("Saved to %s (seed %d, %.2fs)", output_file.absolute(), result.seed, result.elapsed)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Use GPU if available, fall back to CPU
    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        try:
            ti.init(arch=ti.gpu)
        except Exception:
            logger.info("GPU backend unavailable, using CPU")
            ti.init(arch=ti.cpu)

    from src.sdftrace.core.render import RenderError

    try:
        render_scene(args)
        return 0
    except (RenderError, ValueError) as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
