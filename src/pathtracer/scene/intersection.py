"""Scene-level sphere storage and closest-hit intersection.

The world is an ordered list of spheres kept in Taichi fields. Each sphere
carries a material handle that indexes the unified material table in
``src.pathtracer.scene.manager``.

intersect_scene tests every sphere in insertion order while shrinking the
upper bound to the closest hit found so far, so the result is the hit with the
smallest t in (t_min, t_max). Ties keep the earlier sphere.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    0
    >>> # Use intersect_scene within a Taichi kernel
"""

import sys

import taichi as ti

from src.pathtracer.core.ray import Ray, real
from src.pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_record

# Self-intersection guard for secondary rays
T_MIN = 0.001
# Largest finite double; used instead of inf so comparisons stay well defined
T_MAX = sys.float_info.max

# Maximum number of spheres supported in the scene
MAX_SPHERES = 2048

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f64, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    Resets the sphere count to zero. The field data is overwritten when new
    spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Append a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (should be positive).
        material_id: The material handle to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [center[0], center[1], center[2]]
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_sphere(idx: int) -> tuple[tuple[float, float, float], float, int]:
    """Read a sphere back as (center, radius, material_id).

    Raises:
        IndexError: If idx does not name a sphere in the scene.
    """
    if idx < 0 or idx >= num_spheres[None]:
        raise IndexError(f"Sphere index {idx} out of range [0, {num_spheres[None]})")
    center = sphere_centers[idx]
    return (
        (float(center[0]), float(center[1]), float(center[2])),
        float(sphere_radii[idx]),
        int(sphere_material_ids[idx]),
    )


@ti.func
def get_scene_sphere(i: ti.i32) -> Sphere:
    """Assemble the i-th sphere from the field storage."""
    return Sphere(
        center=sphere_centers[i],
        radius=sphere_radii[i],
        material_id=sphere_material_ids[i],
    )


@ti.func
def intersect_scene(ray: Ray, t_min: real, t_max: real) -> HitRecord:
    """Find the closest sphere hit along a ray.

    Args:
        ray: The ray to trace.
        t_min: Minimum t value to consider a valid hit (exclusive).
        t_max: Maximum t value to consider a valid hit (exclusive).

    Returns:
        The HitRecord of the closest intersection, or a miss record if no
        sphere was hit.
    """
    closest_t = t_max
    result = make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        rec = hit_sphere(ray, get_scene_sphere(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec

    return result
