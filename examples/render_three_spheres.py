#!/usr/bin/env python3
"""Render a hand-built scene with spheres of each material.

This script shows how to use the library directly instead of through the
pathtracer command: it builds a scene with SceneManager, sets up the camera,
renders with band-by-band progress and saves the result.

Usage:
    python -m examples.render_three_spheres [options]

Options:
    --width WIDTH       Image width in pixels (default: 300)
    --height HEIGHT     Image height in pixels (default: 150)
    --samples SAMPLES   Number of samples per pixel (default: 50)
    --output OUTPUT     Output file path (default: three_spheres.png)
    --quiet             Suppress progress output

Example:
    python -m examples.render_three_spheres --samples 20 --output spheres.ppm
"""

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render diffuse, metal and glass spheres.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width", type=int, default=300, help="Image width in pixels (default: 300)"
    )
    parser.add_argument(
        "--height", type=int, default=150, help="Image height in pixels (default: 150)"
    )
    parser.add_argument("--samples", type=int, default=50, help="Samples per pixel (default: 50)")
    parser.add_argument(
        "--output",
        type=str,
        default="three_spheres.png",
        help="Output file path (default: three_spheres.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_three_spheres(
    width: int = 300,
    height: int = 150,
    num_samples: int = 50,
    output_path: str = "three_spheres.png",
    quiet: bool = False,
) -> Path:
    """Build the scene, render it and save the image.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    from src.pathtracer.core.renderer import Renderer
    from src.pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    ground = scene.add_lambertian_material((0.8, 0.8, 0.0))
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
    scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), fuzz=0.3)

    # Two solid glass balls sharing one material handle
    glass = scene.add_dielectric_material(1.5)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-0.3, -0.35, -0.4), 0.15, glass)

    setup_camera(
        ThinLensCamera(
            lookfrom=(-2.0, 2.0, 1.0),
            lookat=(0.0, 0.0, -1.0),
            vfov=40.0,
            aspect_ratio=width / height,
            aperture=0.0,
            focus_dist=1.0,
        )
    )

    renderer = Renderer(width, height, samples=num_samples, rows_per_batch=8)
    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        if not quiet:
            print(f"\r  Progress: {rows_done}/{total_rows} rows", end="", flush=True)

    renderer.render(callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    renderer.save_image(output_file)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    ti.init(arch=ti.cpu, default_fp=ti.f64)

    try:
        render_three_spheres(
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            output_path=args.output,
            quiet=args.quiet,
        )
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
