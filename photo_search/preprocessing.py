"""
Image decoding and resampling for photo search.

Turns arbitrary-resolution image bytes into a fixed-size RGB pixel grid so
that every descriptor is computed over the same number of samples and every
pair of grids lines up pixel for pixel.

Grid size and interpolation are configurable via environment variables
(PHOTO_SEARCH_GRID_SIZE, PHOTO_SEARCH_INTERPOLATION). 100x100 keeps coarse
color and layout while bounding per-image work at 10,000 pixels.
"""

import io
import os
import logging

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

logger = logging.getLogger(__name__)

GRID_SIZE = int(os.environ.get("PHOTO_SEARCH_GRID_SIZE", "100"))

_INTERPOLATIONS = {
    "nearest": cv2.INTER_NEAREST,
    "linear": cv2.INTER_LINEAR,
    "area": cv2.INTER_AREA,
}
INTERPOLATION = os.environ.get("PHOTO_SEARCH_INTERPOLATION", "linear").lower()


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 RGB with three channels."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)

    if image_np.ndim == 2:
        image_np = np.stack([image_np] * 3, axis=-1)
    elif image_np.ndim == 3 and image_np.shape[2] == 4:
        image_np = image_np[:, :, :3]
    elif image_np.ndim != 3 or image_np.shape[2] != 3:
        raise ValueError(f"Unsupported image shape {image_np.shape}")

    return np.ascontiguousarray(image_np)


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode raster image bytes into an RGB uint8 array.

    Handles anything Pillow can open, which covers PNG, JPEG, GIF, WebP
    and BMP. Animated formats contribute their first frame only.

    Args:
        data: Encoded image bytes.

    Returns:
        Array of shape (height, width, 3).

    Raises:
        DecodeError: If the bytes are empty or not a readable image.
    """
    if not data:
        raise DecodeError("No image data")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError,
            SyntaxError, ValueError) as e:
        raise DecodeError(f"Unsupported or corrupt image: {e}") from e

    image_np = np.array(rgb, dtype=np.uint8)
    if image_np.size == 0:
        raise DecodeError("Image has no pixels")
    return image_np


def resample_to_grid(image_np: np.ndarray,
                     size: int = None,
                     interpolation: str = None) -> np.ndarray:
    """
    Resample an image to a square size x size grid.

    Aspect ratio is not preserved; the whole frame is stretched onto the
    grid the same way for query and candidates.

    Args:
        image_np: RGB image of any resolution.
        size: Grid edge length. Defaults to GRID_SIZE.
        interpolation: "nearest", "linear" or "area". Defaults to INTERPOLATION.

    Returns:
        uint8 array of shape (size, size, 3).
    """
    size = size or GRID_SIZE
    method = _INTERPOLATIONS.get(interpolation or INTERPOLATION)
    if method is None:
        raise ValueError(f"Unknown interpolation '{interpolation or INTERPOLATION}'")

    image_np = normalize_image(image_np)
    if image_np.shape[:2] == (size, size):
        return image_np.copy()

    return cv2.resize(image_np, (size, size), interpolation=method)


def decode_to_grid(data: bytes, size: int = None, interpolation: str = None) -> np.ndarray:
    """Decode image bytes and resample them to the comparison grid."""
    image_np = decode_image(data)
    logger.debug(f"Decoded {image_np.shape[1]}x{image_np.shape[0]} image")
    return resample_to_grid(image_np, size=size, interpolation=interpolation)
