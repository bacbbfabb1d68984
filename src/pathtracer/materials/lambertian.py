"""Lambertian (ideal diffuse) material implementation.

A diffuse surface scatters toward a random point inside the unit sphere that
sits on top of the hit point along the normal:

    target = point + normal + random_in_unit_sphere()
    scattered = Ray(point, target - point)

This approximates cosine-weighted scattering. The attenuation is simply the
albedo and the ray is never absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # did_scatter, attenuation, scattered = scatter_lambertian(albedo, rec)
"""

import taichi as ti

from src.pathtracer.core.ray import Ray, random_in_unit_sphere, vec3
from src.pathtracer.geometry.sphere import HitRecord


@ti.func
def scatter_lambertian(albedo: vec3, rec: HitRecord):
    """Scatter a ray off a diffuse surface.

    Args:
        albedo: The diffuse reflectance color.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered) where did_scatter is
        always 1, attenuation equals the albedo and scattered is the new ray
        leaving the hit point.
    """
    target = rec.point + rec.normal + random_in_unit_sphere()
    scattered = Ray(origin=rec.point, direction=target - rec.point)
    return 1, albedo, scattered


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 2048

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def validate_albedo(albedo: tuple[float, float, float]) -> None:
    """Check that every albedo component lies in [0, 1].

    Raises:
        ValueError: If the albedo does not have three components or any
            component is outside [0, 1].
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    validate_albedo(albedo)

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = [albedo[0], albedo[1], albedo[2]]
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, rec: HitRecord):
    """Scatter off a registered Lambertian material.

    Looks up the albedo from the registry and calls scatter_lambertian.

    Args:
        material_idx: The index of the material in the registry.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered).
    """
    return scatter_lambertian(get_lambertian_albedo(material_idx), rec)
