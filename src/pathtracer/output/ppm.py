"""Plain-text PPM (P3) reading and writing.

The format is an ASCII header followed by one "r g b" triple per pixel in
row-major order, top row first:

    P3
    <width> <height>
    255
    r g b
    ...
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt

logger = logging.getLogger(__name__)

PPM_MAGIC = "P3"
PPM_MAX_VALUE = 255


def format_ppm(image: npt.NDArray[np.integer]) -> str:
    """Render an (H, W, 3) image as P3 text.

    Raises:
        ValueError: If the array is not (H, W, 3) or has values outside
            [0, 255].
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    if image.size and (image.min() < 0 or image.max() > PPM_MAX_VALUE):
        raise ValueError(f"Pixel values must be in [0, {PPM_MAX_VALUE}]")

    height, width, _ = image.shape
    lines = [PPM_MAGIC, f"{width} {height}", str(PPM_MAX_VALUE)]
    for r, g, b in image.reshape(-1, 3).tolist():
        lines.append(f"{r} {g} {b}")
    return "\n".join(lines) + "\n"


def write_ppm(path: str | Path, image: npt.NDArray[np.integer]) -> None:
    """Write an (H, W, 3) image as a plain-text PPM file."""
    path = Path(path)
    path.write_text(format_ppm(image))
    logger.info("Wrote %dx%d PPM to %s", image.shape[1], image.shape[0], path)


def read_ppm(path: str | Path) -> npt.NDArray[np.uint8]:
    """Read a plain-text PPM file into an (H, W, 3) uint8 array.

    Comments starting with '#' are ignored.

    Raises:
        ValueError: If the file is not a P3 image with max value 255 or the
            pixel count does not match the header.
    """
    tokens: list[str] = []
    for line in Path(path).read_text().splitlines():
        tokens.extend(line.split("#", 1)[0].split())

    if len(tokens) < 4 or tokens[0] != PPM_MAGIC:
        raise ValueError(f"{path} is not a plain-text ({PPM_MAGIC}) PPM file")

    width, height, max_value = int(tokens[1]), int(tokens[2]), int(tokens[3])
    if max_value != PPM_MAX_VALUE:
        raise ValueError(f"Unsupported PPM max value {max_value}, expected {PPM_MAX_VALUE}")

    values = tokens[4:]
    expected = width * height * 3
    if len(values) != expected:
        raise ValueError(f"Expected {expected} color values in {path}, found {len(values)}")

    data = np.array([int(v) for v in values], dtype=np.int64)
    if data.size and (data.min() < 0 or data.max() > PPM_MAX_VALUE):
        raise ValueError(f"Pixel values in {path} must be in [0, {PPM_MAX_VALUE}]")
    return data.reshape(height, width, 3).astype(np.uint8)
