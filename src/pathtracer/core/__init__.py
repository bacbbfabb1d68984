"""Core rendering module.

Components:
    ray: Ray data structure, vector math and random sampling
    color: Sky gradient, gamma correction and 8-bit quantization
    integrator: Radiance estimator, pixel buffer and rendering kernels
    renderer: Band-by-band renderer with progress reporting
"""

from .color import gamma_correct, quantize, sky_color
from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    lerp,
    make_ray,
    powf,
    random_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_vector,
    ray_at,
    real,
    reflect,
    refract,
    schlick,
    unitize,
    vec3,
    vsqrt,
)

# Note: integrator and renderer are NOT imported here; they pull in the scene
# and camera fields. Import them directly from src.pathtracer.core.integrator
# or src.pathtracer.core.renderer when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "real",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "unitize",
    "lerp",
    "vsqrt",
    "powf",
    "reflect",
    "refract",
    "schlick",
    "random_float",
    "random_vector",
    "random_in_unit_sphere",
    "random_in_unit_disk",
    "sky_color",
    "gamma_correct",
    "quantize",
]
