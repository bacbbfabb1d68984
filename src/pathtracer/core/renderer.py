"""Band-by-band renderer with progress reporting.

Renderer wraps the integrator's pixel buffer and renders the image a band of
rows at a time, so that callers can report progress between kernel launches.
The progress counter is the number of completed rows; it does not influence
the pixel values.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.core.renderer import Renderer
    >>> # ... build the scene and call setup_camera() first
    >>> renderer = Renderer(400, 200, samples=100, gamma=2.0)
    >>> renderer.render(callback=lambda done, total: print(f"{done}/{total} rows"))
    >>> image = renderer.get_image_uint8()
"""

import logging
import time
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.pathtracer.core.integrator import (
    clear_render_target,
    get_image_numpy,
    iter_pixels,
    render_rows,
    setup_render_target,
)
from src.pathtracer.output.export import save_image

logger = logging.getLogger(__name__)

# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


class Renderer:
    """Renders the current scene through the current camera.

    The scene and camera are global Taichi state set up beforehand with
    SceneManager and setup_camera. The renderer owns the image size and
    sampling parameters.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Samples per pixel.
        gamma: Display gamma.
        rows_per_batch: Rows rendered per kernel launch.
    """

    def __init__(
        self,
        width: int,
        height: int,
        samples: int = 100,
        gamma: float = 2.0,
        rows_per_batch: int = 16,
    ) -> None:
        """Initialize the renderer and its pixel buffer.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if samples < 1:
            raise ValueError(f"samples must be >= 1, got {samples}")
        if gamma <= 0.0:
            raise ValueError(f"gamma must be positive, got {gamma}")
        if rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be >= 1, got {rows_per_batch}")

        setup_render_target(width, height)
        self._width = width
        self._height = height
        self.samples = samples
        self.gamma = gamma
        self.rows_per_batch = rows_per_batch
        self._rows_done = 0

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def rows_done(self) -> int:
        """Number of rows completed by the last render."""
        return self._rows_done

    @property
    def is_complete(self) -> bool:
        return self._rows_done == self._height

    def reset(self) -> None:
        """Clear the pixel buffer and the progress counter."""
        clear_render_target()
        self._rows_done = 0

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render the image, yielding progress after each band.

        Yields:
            Tuple of (rows_done, total_rows).
        """
        self.reset()
        start = time.perf_counter()
        logger.info(
            "Rendering %dx%d with %d samples per pixel",
            self._width,
            self._height,
            self.samples,
        )

        while self._rows_done < self._height:
            row_end = min(self._rows_done + self.rows_per_batch, self._height)
            render_rows(self._rows_done, row_end, self.samples, self.gamma)
            self._rows_done = row_end
            yield (self._rows_done, self._height)

        elapsed = time.perf_counter() - start
        total_samples = self._width * self._height * self.samples
        logger.info(
            "Render finished in %.2fs (%.0f samples/s)",
            elapsed,
            total_samples / elapsed if elapsed > 0 else float("inf"),
        )

    def render(self, callback: ProgressCallback | None = None) -> None:
        """Render the whole image.

        Args:
            callback: Optional function called after each band with
                (rows_done, total_rows).
        """
        for rows_done, total_rows in self.render_progressive():
            if callback is not None:
                callback(rows_done, total_rows)

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an (height, width, 3) uint8 array."""
        return get_image_numpy()

    def pixels(self) -> Iterator[tuple[int, int, int, int, int]]:
        """Yield (row, col, r, g, b) in row-major order, top row first."""
        return iter_pixels()

    def save_image(self, filepath: str | Path) -> None:
        """Save the rendered image (.ppm as plain-text P3, others via Pillow)."""
        save_image(filepath, self.get_image_uint8())

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples={self.samples}, gamma={self.gamma})"
        )
