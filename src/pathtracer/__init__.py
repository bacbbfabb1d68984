"""Taichi-based Monte Carlo path tracer for sphere scenes.

The renderer traces scenes of spheres with diffuse, metal and glass
materials under a sky gradient, through a thin-lens camera with depth of
field.

Subpackages:
    core: Ray and vector utilities, colors, the integrator and the renderer
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Sphere storage, scene manager and the random ball field
    camera: Thin-lens camera
    output: PPM and Pillow image output

Modules that declare Taichi fields must be imported after ti.init(), so
this package does not import its subpackages eagerly.
"""

__version__ = "0.1.0"
