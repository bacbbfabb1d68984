"""Ray data structure, vector math and random sampling for the path tracer.

This module provides the Ray dataclass together with the small vector layer
everything else is built on. Vectors are Taichi 3-vectors of 64-bit floats and
support component-wise arithmetic out of the box; the functions here add the
geometric operations (dot, cross, unitize, reflect, refract) and the rejection
samplers used by materials and the thin-lens camera.

All functions are Taichi functions and must be called from inside a kernel.
Each parallel worker draws from its own random stream via ``ti.random``, so no
locking is involved.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.core.ray import Ray, ray_at, vec3
    >>> @ti.kernel
    ... def point() -> vec3:
    ...     ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    ...     return ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Scalar and vector types used throughout the renderer
real = ti.f64
vec3 = ti.types.vector(3, real)


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; intersection code accounts for its magnitude.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: real) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> real:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> real:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> real:
    """Compute the Euclidean length of a vector."""
    return ti.sqrt(tm.dot(v, v))


@ti.func
def unitize(v: vec3) -> vec3:
    """Scale a vector to unit length.

    The caller must guarantee a non-zero input; a zero vector yields
    non-finite components.

    Args:
        v: The input vector.

    Returns:
        v divided by its length.
    """
    return v / length(v)


@ti.func
def lerp(a: vec3, b: vec3, t: real) -> vec3:
    """Linearly interpolate from a (t = 0) to b (t = 1).

    Args:
        a: Start value.
        b: Target value.
        t: Interpolation parameter.

    Returns:
        (1 - t) * a + t * b
    """
    return (1.0 - t) * a + t * b


@ti.func
def vsqrt(v: vec3) -> vec3:
    """Element-wise square root."""
    return ti.sqrt(v)


@ti.func
def powf(v: vec3, exponent: real) -> vec3:
    """Raise each component of v to the given power."""
    return v**exponent


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Reflect a vector about a normal.

    Computes v - 2 (v . n) n. The normal should be unit length for the
    reflected vector to keep the magnitude of v.

    Args:
        v: The incoming direction vector.
        n: The surface normal.

    Returns:
        The reflected direction vector.
    """
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def refract(v: vec3, n: vec3, ni_over_nt: real):
    """Refract a direction through a surface using Snell's law.

    The incident vector is unitized first. With dt = uv . n the refracted
    direction exists only when 1 - ni_over_nt^2 (1 - dt^2) is strictly
    positive; otherwise the ray is totally internally reflected.

    Args:
        v: The incoming direction (any non-zero length).
        n: The unit surface normal, facing against the incoming ray.
        ni_over_nt: Ratio of refractive indices (incident over transmitted).

    Returns:
        A tuple (refracted, direction) where refracted is 1 if a refracted
        direction exists and 0 on total internal reflection, in which case
        direction is the zero vector.
    """
    uv = unitize(v)
    dt = tm.dot(uv, n)
    discriminant = 1.0 - ni_over_nt * ni_over_nt * (1.0 - dt * dt)
    refracted = 0
    direction = vec3(0.0, 0.0, 0.0)
    if discriminant > 0.0:
        refracted = 1
        direction = ni_over_nt * (uv - n * dt) - n * ti.sqrt(discriminant)
    return refracted, direction


@ti.func
def schlick(cosine: real, ref_idx: real) -> real:
    """Approximate Fresnel reflectance with Schlick's polynomial.

    Args:
        cosine: Cosine of the angle between the ray and the normal.
        ref_idx: Refractive index of the material.

    Returns:
        r0 + (1 - r0) (1 - cosine)^5 with r0 = ((1 - n) / (1 + n))^2.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * (1.0 - cosine) ** 5


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_float() -> real:
    """Draw a uniform value in [0, 1) from the calling worker's stream."""
    return ti.random(real)


@ti.func
def random_vector() -> vec3:
    """Draw a vector with each component uniform in [0, 1)."""
    return vec3(random_float(), random_float(), random_float())


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point strictly inside the unit ball.

    Rejection sampling: candidates 2 * (r, r, r) - (1, 1, 1) are drawn until
    one has squared length below 1. About half of all candidates are
    accepted, so the loop is bounded in probability but not in the worst
    case.

    Returns:
        A random point with length < 1.
    """
    p = vec3(1.0, 1.0, 1.0)
    while length_squared(p) >= 1.0:
        p = 2.0 * random_vector() - vec3(1.0, 1.0, 1.0)
    return p


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Same rejection scheme as random_in_unit_sphere with z fixed to zero.
    Used for lens sampling in the thin-lens camera.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(1.0, 1.0, 0.0)
    while length_squared(p) >= 1.0:
        p = vec3(2.0 * random_float() - 1.0, 2.0 * random_float() - 1.0, 0.0)
    return p
