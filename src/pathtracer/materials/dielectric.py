"""Dielectric (glass/water) material implementation.

A dielectric never absorbs light: it either reflects or refracts, chosen at
random with the Schlick reflectance as the probability of reflecting.

The orientation of the hit is decided from the raw normal (which always
points out of the sphere):

    - d . n > 0: the ray is leaving the material. The normal is flipped, the
      index ratio is ior and the cosine is ior * (d . n) / |d|.
    - otherwise: the ray is entering. The normal is kept, the index ratio is
      1 / ior and the cosine is -(d . n) / |d|.

When no refracted direction exists (total internal reflection) the ray is
always reflected. The reflected direction is computed from the raw incoming
direction and the unflipped normal.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # did_scatter, attenuation, scattered = scatter_dielectric(ior, ray_in, rec)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import (
    Ray,
    length,
    random_float,
    real,
    reflect,
    refract,
    schlick,
    vec3,
)
from src.pathtracer.geometry.sphere import HitRecord


@ti.func
def dielectric_orientation(ior: real, direction: vec3, normal: vec3):
    """Work out which side of the interface the ray arrives from.

    Args:
        ior: Index of refraction of the material.
        direction: The incoming ray direction (any non-zero length).
        normal: The outward unit normal at the hit point.

    Returns:
        A tuple (outward_normal, ni_over_nt, cosine) used for refraction
        and the Schlick reflectance.
    """
    d_dot_n = tm.dot(direction, normal)
    outward_normal = normal
    ni_over_nt = 1.0 / ior
    cosine = -d_dot_n / length(direction)
    if d_dot_n > 0.0:
        outward_normal = -normal
        ni_over_nt = ior
        cosine = ior * d_dot_n / length(direction)
    return outward_normal, ni_over_nt, cosine


@ti.func
def scatter_dielectric(ior: real, ray_in: Ray, rec: HitRecord):
    """Scatter a ray off a dielectric surface.

    Args:
        ior: Index of refraction of the material.
        ray_in: The incoming ray.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered) where did_scatter is
        always 1 and attenuation is white.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    reflected = reflect(ray_in.direction, rec.normal)

    outward_normal, ni_over_nt, cosine = dielectric_orientation(
        ior, ray_in.direction, rec.normal
    )
    refracted, refracted_direction = refract(ray_in.direction, outward_normal, ni_over_nt)

    direction = reflected
    if refracted == 1:
        if random_float() >= schlick(cosine, ior):
            direction = refracted_direction

    return 1, attenuation, Ray(origin=rec.point, direction=direction)


@ti.func
def will_reflect(ior: real, direction: vec3, normal: vec3) -> ti.i32:
    """Determine if total internal reflection will occur.

    Args:
        ior: Index of refraction of the material.
        direction: The incoming ray direction.
        normal: The outward unit normal at the hit point.

    Returns:
        1 if no refracted direction exists, 0 otherwise.
    """
    outward_normal, ni_over_nt, _cosine = dielectric_orientation(ior, direction, normal)
    refracted, _refracted_direction = refract(direction, outward_normal, ni_over_nt)
    return 1 - refracted


@ti.func
def fresnel_reflectance(ior: real, direction: vec3, normal: vec3) -> real:
    """Probability of reflection for a ray that can refract."""
    _outward_normal, _ni_over_nt, cosine = dielectric_orientation(ior, direction, normal)
    return schlick(cosine, ior)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 2048

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f64, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Must be strictly positive.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is not positive.
    """
    if ior <= 0.0:
        raise ValueError(
            f"Index of refraction = {ior} is not positive. "
            "IOR must be > 0."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> real:
    """Get the IOR for a dielectric material by index.

    Args:
        material_idx: The index of the material in the registry.

    Returns:
        The index of refraction for the material.
    """
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord):
    """Scatter off a registered dielectric material.

    Args:
        material_idx: The index of the material in the registry.
        ray_in: The incoming ray.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered).
    """
    return scatter_dielectric(get_dielectric_ior(material_idx), ray_in, rec)
