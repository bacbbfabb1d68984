"""Sphere primitive with ray-sphere intersection.

The intersection solves |o + t d - c|^2 = r^2 for t using the half-b form of
the quadratic, which works for ray directions of any length:

    oc = o - c
    a = d . d
    b = oc . d
    c = oc . oc - r^2
    discriminant = b^2 - a c

A strictly positive discriminant is required, so a ray that only grazes the
sphere along a tangent does not hit it. The nearer root is tried first and
the farther one second; each must lie strictly inside (t_min, t_max).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray, ray_at, real, vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point, radius and material handle.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        material_id: Handle of the material in the scene's material table.
    """

    center: vec3
    radius: real
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise. The
            remaining fields are only meaningful when hit == 1.
        t: The ray parameter of the intersection.
        point: The 3D intersection point.
        normal: Unit surface normal, (point - center) / radius. It always
            points away from the sphere center, so it faces against the ray
            only for hits from outside; materials orient it themselves.
        material_id: Handle of the material that was struck.
    """

    hit: ti.i32
    t: real
    point: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: real, t_max: real) -> HitRecord:
    """Test a ray against a sphere.

    Args:
        ray: The ray to test. Its direction need not be normalized.
        sphere: The sphere to test against.
        t_min: Lower bound (exclusive) on accepted ray parameters.
        t_max: Upper bound (exclusive) on accepted ray parameters.

    Returns:
        A HitRecord for the nearest root inside (t_min, t_max), or a miss
        record if there is none.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    b = tm.dot(oc, ray.direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = b * b - a * c

    record = make_miss_record()

    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-b - sqrt_d) / a
        valid = t_min < t < t_max

        if not valid:
            t = (-b + sqrt_d) / a
            valid = t_min < t < t_max

        if valid:
            point = ray_at(ray, t)
            record = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=(point - sphere.center) / sphere.radius,
                material_id=sphere.material_id,
            )

    return record


@ti.func
def make_sphere(center: vec3, radius: real, material_id: ti.i32) -> Sphere:
    """Create a sphere from center, radius and material handle."""
    return Sphere(center=center, radius=radius, material_id=material_id)
