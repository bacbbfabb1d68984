"""Command-line entry point: render the ball field scene to an image file.

Usage:
    pathtracer OUTPUT [options]
    python -m src.pathtracer.cli OUTPUT [options]

Options:
    -d, --dims WxH              Image size (default: 400x200)
    -s, --samples N             Samples per pixel (default: 100)
    -g, --gamma G               Display gamma (default: 2.0)
    -D, --ball-density N        Half-width of the random sphere grid (default: 11)
    -F, --look-from x,y,z       Camera position (default: 13,2,3)
    -t, --look-at x,y,z         Camera target (default: 0,0,0)
    -a, --aperture A            Lens diameter (default: 0.1)
    -x, --dist-to-focus D       Focus distance (default: |look-from - look-at|)
    --vfov DEG                  Vertical field of view (default: 20)
    --seed N                    Seed for a reproducible render
    --arch NAME                 Taichi backend (default: cpu)
    --rows-per-batch N          Rows per kernel launch (default: 16)
    --scene FILE                Render a scene saved as JSON instead
    --save-scene FILE           Save the rendered scene as JSON
    -v, --verbose / -q, --quiet Logging verbosity

The output format follows the extension: .ppm is plain-text P3, anything else
is written with Pillow.

Example:
    pathtracer balls.ppm -d 200x100 -s 16 --seed 7
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np
import taichi as ti
from tqdm import tqdm

from src.pathtracer.config import RenderConfig, parse_image_dims, parse_vector

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Send the package's log records to stderr at the given level."""
    package_logger = logging.getLogger("src.pathtracer")
    package_logger.setLevel(level)

    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def _dims(text: str) -> tuple[int, int]:
    try:
        return parse_image_dims(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _vector(text: str) -> tuple[float, float, float]:
    try:
        return parse_vector(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    defaults = RenderConfig()
    parser = argparse.ArgumentParser(
        prog="pathtracer",
        description="Render a field of random spheres with a Monte Carlo path tracer.",
    )
    parser.add_argument("output", type=Path, help="Output image path (.ppm, .png, ...)")
    parser.add_argument(
        "-d",
        "--dims",
        type=_dims,
        default=(defaults.width, defaults.height),
        metavar="WxH",
        help=f"Image size (default: {defaults.width}x{defaults.height})",
    )
    parser.add_argument(
        "-s",
        "--samples",
        type=int,
        default=defaults.samples,
        help=f"Samples per pixel (default: {defaults.samples})",
    )
    parser.add_argument(
        "-g",
        "--gamma",
        type=float,
        default=defaults.gamma,
        help=f"Display gamma (default: {defaults.gamma})",
    )
    parser.add_argument(
        "-D",
        "--ball-density",
        type=int,
        default=defaults.ball_density,
        help=f"Half-width of the random sphere grid (default: {defaults.ball_density})",
    )
    parser.add_argument(
        "-F",
        "--look-from",
        type=_vector,
        default=defaults.look_from,
        metavar="x,y,z",
        help="Camera position (default: 13,2,3)",
    )
    parser.add_argument(
        "-t",
        "--look-at",
        type=_vector,
        default=defaults.look_at,
        metavar="x,y,z",
        help="Point the camera looks at (default: 0,0,0)",
    )
    parser.add_argument(
        "-a",
        "--aperture",
        type=float,
        default=defaults.aperture,
        help=f"Lens diameter (default: {defaults.aperture})",
    )
    parser.add_argument(
        "-x",
        "--dist-to-focus",
        type=float,
        default=None,
        help="Focus distance (default: distance from look-from to look-at)",
    )
    parser.add_argument(
        "--vfov",
        type=float,
        default=defaults.vfov,
        help=f"Vertical field of view in degrees (default: {defaults.vfov})",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible render")
    parser.add_argument(
        "--arch",
        default=defaults.arch,
        help=f"Taichi backend (default: {defaults.arch})",
    )
    parser.add_argument(
        "--rows-per-batch",
        type=int,
        default=defaults.rows_per_batch,
        help=f"Rows per kernel launch (default: {defaults.rows_per_batch})",
    )
    parser.add_argument("--scene", type=Path, default=None, help="Render a scene saved as JSON")
    parser.add_argument(
        "--save-scene", type=Path, default=None, help="Save the rendered scene as JSON"
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only warnings, no progress bar"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> RenderConfig:
    """Build and validate a RenderConfig from parsed arguments.

    Raises:
        ValueError: If any option is out of range.
    """
    width, height = args.dims
    config = RenderConfig(
        width=width,
        height=height,
        samples=args.samples,
        gamma=args.gamma,
        ball_density=args.ball_density,
        look_from=args.look_from,
        look_at=args.look_at,
        vfov=args.vfov,
        aperture=args.aperture,
        dist_to_focus=args.dist_to_focus,
        seed=args.seed,
        arch=args.arch,
        rows_per_batch=args.rows_per_batch,
    )
    config.validate()
    return config


def init_taichi(config: RenderConfig) -> None:
    """Initialize Taichi in double precision on the configured backend.

    The kernel random streams are seeded from config.seed, or from fresh
    entropy when no seed is given.
    """
    if config.seed is None:
        random_seed = int(np.random.default_rng().integers(2**31 - 1))
    else:
        random_seed = config.seed
    ti.init(arch=getattr(ti, config.arch), default_fp=ti.f64, random_seed=random_seed)
    logger.debug("Taichi initialized on %s with random_seed=%d", config.arch, random_seed)


def render(
    config: RenderConfig,
    output: Path,
    scene_path: Path | None = None,
    save_scene_path: Path | None = None,
    show_progress: bool = True,
) -> Path:
    """Build the scene and camera, render, and write the image.

    Taichi must already be initialized.

    Args:
        config: Validated render configuration.
        output: Output image path.
        scene_path: Optional JSON scene to render instead of the ball field.
        save_scene_path: Optional path to store the scene as JSON.
        show_progress: Show a tqdm progress bar over image rows.

    Returns:
        The output path.
    """
    # Lazy imports so that Taichi fields are created after ti.init()
    from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    from src.pathtracer.core.renderer import Renderer
    from src.pathtracer.scene.manager import SceneManager
    from src.pathtracer.scene.random_scene import create_random_scene

    if scene_path is not None:
        scene = SceneManager()
        scene.load(scene_path)
    else:
        scene = create_random_scene(config.ball_density, seed=config.seed)

    if save_scene_path is not None:
        scene.save(save_scene_path)

    setup_camera(
        ThinLensCamera(
            lookfrom=config.look_from,
            lookat=config.look_at,
            vup=config.vup,
            vfov=config.vfov,
            aspect_ratio=config.aspect_ratio,
            aperture=config.aperture,
            focus_dist=config.focus_distance,
        )
    )

    renderer = Renderer(
        config.width,
        config.height,
        samples=config.samples,
        gamma=config.gamma,
        rows_per_batch=config.rows_per_batch,
    )

    with tqdm(total=config.height, desc="Rendering", unit="row", disable=not show_progress) as bar:
        renderer.render(callback=lambda rows_done, _total: bar.update(rows_done - bar.n))

    renderer.save_image(output)
    return output


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging(logging.DEBUG)
    elif args.quiet:
        setup_logging(logging.WARNING)
    else:
        setup_logging(logging.INFO)

    try:
        config = config_from_args(args)
        logger.debug("Render configuration: %s", config.to_dict())
        init_taichi(config)
        render(
            config,
            args.output,
            scene_path=args.scene,
            save_scene_path=args.save_scene,
            show_progress=not args.quiet,
        )
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("%s", e)
        return 1

    logger.info("Saved to %s", args.output.absolute())
    return 0


if __name__ == "__main__":
    sys.exit(main())
