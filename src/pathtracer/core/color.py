"""Color conversion helpers: sky background, gamma correction, quantization.

Radiance values are carried as vec3 in linear space. Before output each pixel
average is gamma corrected (exponent 1 / gamma) and mapped to 8-bit channels
by multiplying with 255 and truncating. Channels outside [0, 1] saturate to
0 or 255 instead of wrapping.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import lerp, unitize, vec3

# Sky gradient end points: horizon (white) to zenith (light blue)
SKY_HORIZON_COLOR = (1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = (0.5, 0.7, 1.0)

MAX_CHANNEL_VALUE = 255


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Background radiance for a ray that escapes the scene.

    Blends white and light blue by the height of the unit direction,
    t = 0.5 * (y + 1), so straight down is white and straight up is blue.

    Args:
        direction: The ray direction (any non-zero length).

    Returns:
        The sky color seen along the direction.
    """
    unit_direction = unitize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return lerp(
        vec3(SKY_HORIZON_COLOR[0], SKY_HORIZON_COLOR[1], SKY_HORIZON_COLOR[2]),
        vec3(SKY_ZENITH_COLOR[0], SKY_ZENITH_COLOR[1], SKY_ZENITH_COLOR[2]),
        t,
    )


@ti.func
def gamma_correct(color: vec3, inv_gamma: ti.f64) -> vec3:
    """Apply gamma correction by raising each channel to inv_gamma."""
    return color**inv_gamma


@ti.func
def quantize(color: vec3):
    """Convert a [0, 1] color to integer channels in [0, 255].

    Channels are scaled by 255 and truncated toward zero. Out-of-range
    values are clamped first, so noise above 1.0 saturates at 255.

    Args:
        color: Gamma-corrected color.

    Returns:
        An integer 3-vector.
    """
    scaled = tm.clamp(color * float(MAX_CHANNEL_VALUE), 0.0, float(MAX_CHANNEL_VALUE))
    return ti.cast(scaled, ti.i32)
