"""Shared test fixtures for photo search tests."""

import io

import numpy as np
import cv2
import pytest
from PIL import Image

from photo_search.models import CandidateImage, ReportCategory


def encode_image(image_np, fmt="PNG"):
    """Encode an RGB uint8 array to image bytes in the given Pillow format."""
    buf = io.BytesIO()
    Image.fromarray(image_np).save(buf, format=fmt)
    return buf.getvalue()


def solid_image(color, width=100, height=100):
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = color
    return img


def write_image(directory, name, image_np, fmt="PNG"):
    """Write an encoded image under directory and return its path as a string."""
    path = directory / name
    path.write_bytes(encode_image(image_np, fmt))
    return str(path)


def make_candidate(location, candidate_id="c1", category=ReportCategory.DEVICE, /, **metadata):
    return CandidateImage(
        id=candidate_id,
        category=category,
        image_location=location,
        metadata=metadata,
    )


@pytest.fixture
def red_square_image():
    """Generate a 200x200 red square on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [200, 30, 30]  # Red square
    return img


@pytest.fixture
def blue_circle_image():
    """Generate a 200x200 blue circle on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    cv2.circle(img, (100, 100), 60, (30, 30, 200), -1)
    return img


@pytest.fixture
def gradient_image():
    """Generate a 100x100 horizontal gray gradient."""
    row = np.linspace(0, 255, 100).astype(np.uint8)
    gray = np.tile(row, (100, 1))
    return np.stack([gray] * 3, axis=-1)


@pytest.fixture
def noise_image():
    """Generate a 100x100 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (100, 100, 3), dtype=np.uint8)


@pytest.fixture
def pure_red_png():
    return encode_image(solid_image((255, 0, 0)))
