"""Decode chart screenshots into RGB pixel grids via Pillow."""

import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when a chart image cannot be opened or decoded."""


def load_pixel_grid(path: str) -> np.ndarray:
    """Load an image file as an RGB pixel grid.

    Args:
        path: Path to a PNG/JPEG/... chart screenshot.

    Returns:
        ``uint8`` array of shape (height, width, 3).

    Raises:
        ImageDecodeError: If the file is missing or not a decodable image.
    """
    try:
        with Image.open(path) as img:
            grid = np.asarray(img.convert("RGB"), dtype=np.uint8)
    except (OSError, UnidentifiedImageError) as exc:
        raise ImageDecodeError(f"Could not load image: {path}") from exc

    logger.debug("decoded %s: %dx%d", path, grid.shape[1], grid.shape[0])
    return grid
