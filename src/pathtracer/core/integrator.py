"""Path tracing integrator and per-pixel sampling kernel.

The radiance estimator follows a path backward from the camera:

    1. Intersect the ray with the scene in (T_MIN, T_MAX).
    2. On a miss, the path picks up the sky gradient and ends.
    3. On a hit, the struck material scatters the ray. An absorbed ray
       (scatter failed) ends the path with black.
    4. Otherwise the attenuation multiplies the path throughput and the
       scattered ray is traced next, up to MAX_DEPTH scatter events. A path
       that would need more ends with black.

The recursion attenuation * radiance(scattered) is evaluated as a loop that
carries the running product, which gives the same result.

The pixel driver takes `samples` jittered camera rays per pixel, averages
their radiance, applies gamma 1/gamma and quantizes to 8 bits. Pixels live in
a preallocated [row, col] buffer (row 0 = top of the image). Each kernel call
renders a band of rows; Taichi runs the pixels of the band in parallel and
every pixel is written to its own slot, so the buffer is always in row-major
order whatever order the workers finish in.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.core.integrator import (
    ...     get_image_numpy, render_image, setup_render_target
    ... )
    >>> from src.pathtracer.scene.random_scene import create_random_scene
    >>> from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>>
    >>> scene = create_random_scene(ball_density=3, seed=1)
    >>> setup_camera(ThinLensCamera(lookfrom=(13.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0)))
    >>> setup_render_target(200, 100)
    >>> render_image(samples=10, gamma=2.0)
    >>> image = get_image_numpy()
"""

from collections.abc import Iterator

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.thin_lens import get_ray
from src.pathtracer.config import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
from src.pathtracer.core.color import gamma_correct, quantize, sky_color
from src.pathtracer.core.ray import Ray, random_float, real, vec3
from src.pathtracer.geometry.sphere import HitRecord
from src.pathtracer.materials.dielectric import scatter_dielectric_by_id
from src.pathtracer.materials.lambertian import scatter_lambertian_by_id
from src.pathtracer.materials.metal import scatter_metal_by_id
from src.pathtracer.scene.intersection import T_MAX, T_MIN, intersect_scene
from src.pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum number of scatter events along a path
MAX_DEPTH = 50

# =============================================================================
# Render Target (Pixel Buffer)
# =============================================================================

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Quantized 8-bit colors, indexed [row, col] with row 0 at the top
_pixels = ti.Vector.field(3, dtype=ti.i32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Results of the last render_sample and trace_single_ray calls
_single_sample = ti.Vector.field(3, dtype=real, shape=())
_last_path_radiance = ti.Vector.field(3, dtype=real, shape=())
_last_path_bounces = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the pixel buffer.

    Args:
        width: Image width in pixels (1 to MAX_IMAGE_WIDTH).
        height: Image height in pixels (1 to MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is below 1 or above the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Reset every pixel to black."""
    _pixels.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(material_id: ti.i32, ray_in: Ray, rec: HitRecord):
    """Dispatch to the scatter function of the struck material.

    Args:
        material_id: The material handle from the hit record.
        ray_in: The incoming ray.
        rec: The hit record.

    Returns:
        A tuple (did_scatter, attenuation, scattered). An unknown handle
        absorbs the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    did_scatter = 0
    attenuation = vec3(0.0, 0.0, 0.0)
    scattered = Ray(origin=rec.point, direction=ray_in.direction)

    if mat_type == int(MaterialType.LAMBERTIAN):
        did_scatter, attenuation, scattered = scatter_lambertian_by_id(type_index, rec)
    elif mat_type == int(MaterialType.METAL):
        did_scatter, attenuation, scattered = scatter_metal_by_id(type_index, ray_in, rec)
    elif mat_type == int(MaterialType.DIELECTRIC):
        did_scatter, attenuation, scattered = scatter_dielectric_by_id(type_index, ray_in, rec)

    return did_scatter, attenuation, scattered


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_ray(ray: Ray):
    """Estimate the radiance arriving along a ray.

    Args:
        ray: The camera (or any primary) ray.

    Returns:
        A tuple (radiance, bounces) where bounces is the number of scatter
        events the path went through.
    """
    origin = ray.origin
    direction = ray.direction

    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    bounces = 0

    # Active flag for path continuation (no break inside the loop)
    active = 1

    # MAX_DEPTH scatters plus the final segment that may still reach the sky
    for depth in range(MAX_DEPTH + 1):
        if active == 1:
            current = Ray(origin=origin, direction=direction)
            rec = intersect_scene(current, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance = throughput * sky_color(direction)
                active = 0
            else:
                did_scatter, attenuation, scattered = scatter_material(
                    rec.material_id, current, rec
                )

                if did_scatter == 0 or depth >= MAX_DEPTH:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = scattered.origin
                    direction = scattered.direction
                    bounces += 1

    return radiance, bounces


@ti.func
def render_pixel(row: ti.i32, col: ti.i32, width: ti.i32, height: ti.i32, samples: ti.i32) -> vec3:
    """Average `samples` jittered radiance estimates for one pixel.

    The vertical image coordinate is (height - row + jitter) / height, so row
    0 maps to the top of the image plane.
    """
    total = vec3(0.0, 0.0, 0.0)
    for _s in range(samples):
        s = (ti.cast(col, real) + random_float()) / ti.cast(width, real)
        t = (ti.cast(height - row, real) + random_float()) / ti.cast(height, real)
        color, _bounces = trace_ray(get_ray(s, t))
        total += color
    return total / ti.cast(samples, real)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    inv_gamma: real,
):
    """Render and quantize the rows [row_start, row_end)."""
    for row, col in ti.ndrange((row_start, row_end), width):
        color = render_pixel(row, col, width, height, samples)

        # Replace NaN/Inf from degenerate directions with black
        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _pixels[row, col] = quantize(gamma_correct(color, inv_gamma))


@ti.kernel
def _render_single_sample(row: ti.i32, col: ti.i32, width: ti.i32, height: ti.i32):
    # One-iteration outer loop keeps the sample and path loops serial
    for _ in range(1):
        _single_sample[None] = render_pixel(row, col, width, height, 1)


@ti.kernel
def _trace_single_ray(ox: real, oy: real, oz: real, dx: real, dy: real, dz: real):
    for _ in range(1):
        radiance, bounces = trace_ray(Ray(origin=vec3(ox, oy, oz), direction=vec3(dx, dy, dz)))
        _last_path_radiance[None] = radiance
        _last_path_bounces[None] = bounces


# =============================================================================
# Public Rendering API
# =============================================================================


def render_rows(row_start: int, row_end: int, samples: int, gamma: float) -> None:
    """Render a band of image rows into the pixel buffer.

    Args:
        row_start: First row to render (0 = top).
        row_end: One past the last row to render.
        samples: Samples per pixel (>= 1).
        gamma: Display gamma (> 0); colors are raised to 1 / gamma.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If the row range, samples or gamma is invalid.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Invalid row range [{row_start}, {row_end}) for height {height}")
    if samples < 1:
        raise ValueError(f"samples must be >= 1, got {samples}")
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")

    if row_start == row_end:
        return
    _render_rows(row_start, row_end, width, height, samples, 1.0 / gamma)


def render_image(samples: int = 1, gamma: float = 2.0) -> None:
    """Render every row of the image."""
    _check_render_target_initialized()
    _, height = get_image_dimensions()
    render_rows(0, height, samples, gamma)


def render_sample(row: int, col: int) -> tuple[float, float, float]:
    """Trace one jittered camera sample through a pixel and return its radiance.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    _render_single_sample(row, col, width, height)
    color = _single_sample[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[tuple[float, float, float], int]:
    """Trace a single ray through the current scene.

    Args:
        origin: Ray origin.
        direction: Ray direction (non-zero, any length).

    Returns:
        Tuple of (radiance, bounces).
    """
    _trace_single_ray(origin[0], origin[1], origin[2], direction[0], direction[1], direction[2])
    color = _last_path_radiance[None]
    return (float(color[0]), float(color[1]), float(color[2])), int(_last_path_bounces[None])


def get_image_numpy() -> npt.NDArray[np.uint8]:
    """Get the rendered pixels as an (height, width, 3) uint8 array.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    image = _pixels.to_numpy()[:height, :width, :]
    return np.clip(image, 0, 255).astype(np.uint8)


def iter_pixels() -> Iterator[tuple[int, int, int, int, int]]:
    """Yield (row, col, r, g, b) for every pixel in row-major order."""
    image = get_image_numpy()
    height, width, _ = image.shape
    for row in range(height):
        for col in range(width):
            r, g, b = image[row, col]
            yield row, col, int(r), int(g), int(b)
