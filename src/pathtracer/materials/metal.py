"""Metal (specular reflective) material implementation.

A metal reflects the unit incident direction about the surface normal and
perturbs the result by a random offset inside a ball of radius ``fuzz``:

    reflected = reflect(unitize(d), n)
    scattered = reflected + fuzz * random_in_unit_sphere()

The ray is absorbed when the perturbed direction ends up below the surface
(scattered . n <= 0). Fuzz 0 gives a perfect mirror; fuzz is capped at 1.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # did_scatter, attenuation, scattered = scatter_metal(
    >>> #     albedo, fuzz, ray_in, rec
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import (
    Ray,
    random_in_unit_sphere,
    real,
    reflect,
    unitize,
    vec3,
)
from src.pathtracer.geometry.sphere import HitRecord
from src.pathtracer.materials.lambertian import validate_albedo

MAX_FUZZ = 1.0


@ti.func
def scatter_metal(albedo: vec3, fuzz: real, ray_in: Ray, rec: HitRecord):
    """Scatter a ray off a metal surface.

    Args:
        albedo: The reflective color.
        fuzz: Perturbation radius in [0, 1].
        ray_in: The incoming ray.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered) where:
        - did_scatter: 1 if the scattered direction leaves the surface,
          0 if the ray is absorbed.
        - attenuation: The albedo.
        - scattered: The reflected ray starting at the hit point.
    """
    reflected = reflect(unitize(ray_in.direction), rec.normal)
    scattered = Ray(
        origin=rec.point,
        direction=reflected + fuzz * random_in_unit_sphere(),
    )

    did_scatter = 0
    if tm.dot(scattered.direction, rec.normal) > 0.0:
        did_scatter = 1

    return did_scatter, albedo, scattered


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 2048

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f64, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clamp_fuzz(fuzz: float) -> float:
    """Cap fuzz at 1.0.

    Raises:
        ValueError: If fuzz is negative.
    """
    if fuzz < 0.0:
        raise ValueError(f"Fuzz = {fuzz} is negative. Fuzz must be in [0, 1].")
    return min(fuzz, MAX_FUZZ)


def clear_metal_materials() -> None:
    """Clear all metal materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component should be in [0, 1].
        fuzz: The perturbation radius. Default is 0 (perfect mirror).
            Values above 1 are clamped to 1.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
        ValueError: If fuzz is negative.
    """
    validate_albedo(albedo)
    fuzz = clamp_fuzz(fuzz)

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = [albedo[0], albedo[1], albedo[2]]
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


def get_metal_fuzz_value(material_idx: int) -> float:
    """Read back the stored fuzz of a metal material from Python scope."""
    return float(metal_fuzzes[material_idx])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> real:
    """Get the fuzz for a metal material by index."""
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord):
    """Scatter off a registered metal material.

    Convenience function that looks up the albedo and fuzz from the
    material registry and calls scatter_metal.

    Args:
        material_idx: The index of the material in the registry.
        ray_in: The incoming ray.
        rec: The hit record of the intersection being shaded.

    Returns:
        A tuple (did_scatter, attenuation, scattered).
    """
    albedo = get_metal_albedo(material_idx)
    fuzz = get_metal_fuzz(material_idx)
    return scatter_metal(albedo, fuzz, ray_in, rec)
