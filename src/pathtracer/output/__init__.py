"""Image output: plain-text PPM and Pillow-backed formats."""

from .export import compute_rmse, load_image, save_image
from .ppm import format_ppm, read_ppm, write_ppm

__all__ = [
    "save_image",
    "load_image",
    "compute_rmse",
    "format_ppm",
    "write_ppm",
    "read_ppm",
]
