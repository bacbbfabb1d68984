"""Procedural "ball field" scene.

The scene is a huge gray ground sphere, three large feature spheres (diffuse,
glass and metal) and a grid of small random spheres:

    for a in [-density, density):
        for b in [-density, density):
            m = rand()
            center = (a + 0.9 * rand(), 0.2, b + 0.9 * rand())
            skip if |center - (4, 0.2, 0)| <= 0.9
            m < 0.8   -> Lambertian(rand_vec * rand_vec)
            m < 0.95  -> Metal(0.5 * (rand_vec + 1), fuzz = 0.5 * rand())
            otherwise -> Dielectric(1.5)

All glass spheres share a single dielectric material handle.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.scene.random_scene import create_random_scene
    >>> scene = create_random_scene(ball_density=3, seed=7)
    >>> scene.get_sphere_count() <= 4 + 36
    True
"""

import logging

import numpy as np

from src.pathtracer.scene.intersection import MAX_SPHERES
from src.pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Scene Constants
# =============================================================================

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)

FEATURE_RADIUS = 1.0
DIFFUSE_FEATURE_CENTER = (-4.0, 1.0, 0.0)
DIFFUSE_FEATURE_ALBEDO = (0.4, 0.2, 0.1)
GLASS_FEATURE_CENTER = (0.0, 1.0, 0.0)
METAL_FEATURE_CENTER = (4.0, 1.0, 0.0)
METAL_FEATURE_ALBEDO = (0.7, 0.6, 0.5)

GLASS_IOR = 1.5

SMALL_RADIUS = 0.2
JITTER = 0.9
# Small spheres closer than this to CLEARANCE_POINT are dropped
CLEARANCE_POINT = np.array([4.0, 0.2, 0.0])
CLEARANCE_DISTANCE = 0.9

DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95

NUM_FIXED_SPHERES = 4


def max_ball_density() -> int:
    """Largest density whose full grid still fits in the sphere storage."""
    density = 0
    while (2 * (density + 1)) ** 2 + NUM_FIXED_SPHERES <= MAX_SPHERES:
        density += 1
    return density


def create_random_scene(
    ball_density: int = 11,
    seed: int | None = None,
    scene: SceneManager | None = None,
) -> SceneManager:
    """Build the ball field scene.

    Args:
        ball_density: Half-width of the grid of small spheres; the grid covers
            [-ball_density, ball_density) on both axes. Must be >= 0.
        seed: Seed for the numpy generator. None draws fresh entropy.
        scene: Existing SceneManager to fill. It is cleared first. A new one
            is created when omitted.

    Returns:
        The populated SceneManager.

    Raises:
        ValueError: If ball_density is negative or too large for the
            preallocated sphere storage.
    """
    if ball_density < 0:
        raise ValueError(f"ball_density must be >= 0, got {ball_density}")
    limit = max_ball_density()
    if ball_density > limit:
        raise ValueError(
            f"ball_density {ball_density} exceeds the maximum of {limit} "
            f"({MAX_SPHERES} spheres)"
        )

    rng = np.random.default_rng(seed)

    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    scene.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)
    scene.add_lambertian_sphere(DIFFUSE_FEATURE_CENTER, FEATURE_RADIUS, DIFFUSE_FEATURE_ALBEDO)
    _, glass = scene.add_dielectric_sphere(GLASS_FEATURE_CENTER, FEATURE_RADIUS, GLASS_IOR)
    scene.add_metal_sphere(METAL_FEATURE_CENTER, FEATURE_RADIUS, METAL_FEATURE_ALBEDO, fuzz=0.0)

    for a in range(-ball_density, ball_density):
        for b in range(-ball_density, ball_density):
            choose_mat = rng.random()
            center = np.array([a + JITTER * rng.random(), SMALL_RADIUS, b + JITTER * rng.random()])
            if np.linalg.norm(center - CLEARANCE_POINT) <= CLEARANCE_DISTANCE:
                continue

            center_tuple = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(center_tuple, SMALL_RADIUS, tuple(albedo.tolist()))
            elif choose_mat < METAL_PROBABILITY:
                albedo = (rng.random(3) + 1.0) * 0.5
                fuzz = 0.5 * rng.random()
                scene.add_metal_sphere(
                    center_tuple, SMALL_RADIUS, tuple(albedo.tolist()), fuzz=float(fuzz)
                )
            else:
                scene.add_sphere(center_tuple, SMALL_RADIUS, glass)

    logger.info(
        "Generated ball field: density=%d, %d spheres, %d materials",
        ball_density,
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene
