"""Image export utilities for rendered images.

Supported formats:
    - PPM (plain-text P3, written directly)
    - PNG and every other format Pillow can write

Example:
    >>> from src.pathtracer.output.export import save_image
    >>> save_image("out.png", renderer.get_image_uint8())
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.pathtracer.output.ppm import read_ppm, write_ppm

logger = logging.getLogger(__name__)


def save_image(filepath: str | Path, image: npt.NDArray[np.uint8]) -> None:
    """Save an (H, W, 3) uint8 image, choosing the format by extension.

    Args:
        filepath: Output path. ".ppm" is written as plain-text P3; any other
            extension goes through Pillow.
        image: The image to save.

    Raises:
        ValueError: If Pillow does not know the extension.
    """
    path = Path(filepath)
    if path.suffix.lower() == ".ppm":
        write_ppm(path, image)
        return

    pil_image = PILImage.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    pil_image.save(path)
    logger.info("Wrote %dx%d image to %s", image.shape[1], image.shape[0], path)


def load_image(filepath: str | Path) -> npt.NDArray[np.uint8]:
    """Load an image as an (H, W, 3) uint8 array (PPM P3 or any Pillow format)."""
    path = Path(filepath)
    if path.suffix.lower() == ".ppm":
        return read_ppm(path)
    with PILImage.open(path) as pil_image:
        return np.asarray(pil_image.convert("RGB"), dtype=np.uint8)


def compute_rmse(
    image_a: npt.NDArray[np.number],
    image_b: npt.NDArray[np.number],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
