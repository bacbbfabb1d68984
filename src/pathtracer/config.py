"""Render configuration.

RenderConfig holds every option of a render with the defaults of the
command-line tool. It only validates and derives values; building
the scene and camera from it is left to the caller.

Example:
    >>> from src.pathtracer.config import RenderConfig, parse_image_dims
    >>> config = RenderConfig(width=200, height=100, samples=10)
    >>> config.validate()
    >>> config.focus_distance == config.look_distance
    True
    >>> parse_image_dims("640x480")
    (640, 480)
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

# Size of the preallocated pixel buffer in core.integrator
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

Vec3Tuple = tuple[float, float, float]

# Taichi backend names accepted for arch
SUPPORTED_ARCHS = ("cpu", "gpu", "cuda", "vulkan", "metal", "opengl", "x64", "arm64")


@dataclass
class RenderConfig:
    """All parameters of a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Samples per pixel.
        gamma: Display gamma, applied as exponent 1 / gamma.
        ball_density: Half-width of the random sphere grid.
        look_from: Camera position.
        look_at: Point the camera looks at.
        vup: Up direction.
        vfov: Vertical field of view in degrees.
        aperture: Lens diameter.
        dist_to_focus: Focus distance; None uses |look_from - look_at|.
        seed: Seed for reproducible renders, None for fresh entropy.
        arch: Taichi backend name.
        rows_per_batch: Rows per kernel launch (progress granularity).
    """

    width: int = 400
    height: int = 200
    samples: int = 100
    gamma: float = 2.0
    ball_density: int = 11
    look_from: Vec3Tuple = (13.0, 2.0, 3.0)
    look_at: Vec3Tuple = (0.0, 0.0, 0.0)
    vup: Vec3Tuple = (0.0, 1.0, 0.0)
    vfov: float = 20.0
    aperture: float = 0.1
    dist_to_focus: float | None = None
    seed: int | None = None
    arch: str = "cpu"
    rows_per_batch: int = 16

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def look_distance(self) -> float:
        """Distance between look_from and look_at."""
        return math.dist(self.look_from, self.look_at)

    @property
    def focus_distance(self) -> float:
        """The focus distance actually used by the camera."""
        if self.dist_to_focus is None:
            return self.look_distance
        return self.dist_to_focus

    def validate(self) -> None:
        """Check every field.

        Raises:
            ValueError: Naming the first invalid field.
        """
        if not 1 <= self.width <= MAX_IMAGE_WIDTH:
            raise ValueError(f"width must be in [1, {MAX_IMAGE_WIDTH}], got {self.width}")
        if not 1 <= self.height <= MAX_IMAGE_HEIGHT:
            raise ValueError(f"height must be in [1, {MAX_IMAGE_HEIGHT}], got {self.height}")
        if self.samples < 1:
            raise ValueError(f"samples must be >= 1, got {self.samples}")
        if not self.gamma > 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.ball_density < 0:
            raise ValueError(f"ball_density must be >= 0, got {self.ball_density}")
        for name in ("look_from", "look_at", "vup"):
            value = getattr(self, name)
            if len(value) != 3:
                raise ValueError(f"{name} must have 3 components, got {value!r}")
        if self.look_distance == 0.0:
            raise ValueError("look_from and look_at must be different points")
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be >= 0, got {self.aperture}")
        if self.dist_to_focus is not None and not self.dist_to_focus > 0.0:
            raise ValueError(f"dist_to_focus must be positive, got {self.dist_to_focus}")
        if self.arch not in SUPPORTED_ARCHS:
            raise ValueError(f"arch must be one of {SUPPORTED_ARCHS}, got {self.arch!r}")
        if self.rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be >= 1, got {self.rows_per_batch}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_image_dims(text: str) -> tuple[int, int]:
    """Parse a WIDTHxHEIGHT string such as "400x200".

    Raises:
        ValueError: If the string is malformed or a dimension is not positive.
    """
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Image dimensions must look like WIDTHxHEIGHT, got {text!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ValueError(f"Image dimensions must be integers, got {text!r}") from e
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {text!r}")
    return width, height


def parse_vector(text: str) -> Vec3Tuple:
    """Parse an "x,y,z" string into a tuple of three floats.

    Raises:
        ValueError: If the string does not hold exactly three numbers.
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 3:
        raise ValueError(f"Expected three comma-separated numbers, got {text!r}")
    try:
        x, y, z = (float(p) for p in parts)
    except ValueError as e:
        raise ValueError(f"Expected three comma-separated numbers, got {text!r}") from e
    return (x, y, z)
