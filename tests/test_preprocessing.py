"""Tests for image decoding and resampling."""

import numpy as np
import pytest

from photo_search.errors import DecodeError
from photo_search.preprocessing import (
    GRID_SIZE, decode_image, decode_to_grid, normalize_image, resample_to_grid,
)

from conftest import encode_image, solid_image


class TestDecodeImage:
    """Tests for byte decoding."""

    @pytest.mark.parametrize("fmt", ["PNG", "GIF", "WEBP", "BMP"])
    def test_lossless_formats_round_trip_color(self, fmt):
        data = encode_image(solid_image((255, 0, 0), 40, 30), fmt)
        image = decode_image(data)
        assert image.shape == (30, 40, 3)
        if fmt == "WEBP":
            # Default WebP encoding is lossy
            assert abs(int(image[0, 0, 0]) - 255) <= 8
        else:
            assert tuple(image[0, 0]) == (255, 0, 0)

    def test_jpeg(self, red_square_image):
        image = decode_image(encode_image(red_square_image, "JPEG"))
        assert image.shape == (200, 200, 3)
        assert image.dtype == np.uint8

    def test_rgba_png_drops_alpha(self):
        rgba = np.zeros((10, 10, 4), dtype=np.uint8)
        rgba[..., 1] = 200
        rgba[..., 3] = 255
        image = decode_image(encode_image(rgba))
        assert image.shape == (10, 10, 3)
        assert tuple(image[0, 0]) == (0, 200, 0)

    def test_grayscale_png_becomes_rgb(self):
        gray = np.full((10, 10), 77, dtype=np.uint8)
        image = decode_image(encode_image(gray))
        assert image.shape == (10, 10, 3)
        assert tuple(image[5, 5]) == (77, 77, 77)

    def test_not_an_image(self):
        with pytest.raises(DecodeError):
            decode_image(b"<html>404 Not Found</html>")

    def test_truncated_image(self, red_square_image):
        data = encode_image(red_square_image)
        with pytest.raises(DecodeError):
            decode_image(data[:len(data) // 2])

    def test_empty_bytes(self):
        with pytest.raises(DecodeError):
            decode_image(b"")


class TestResampleToGrid:
    """Tests for resampling to the comparison grid."""

    def test_default_grid_size(self, red_square_image):
        grid = resample_to_grid(red_square_image)
        assert grid.shape == (GRID_SIZE, GRID_SIZE, 3)
        assert GRID_SIZE == 100

    @pytest.mark.parametrize("interpolation", ["nearest", "linear", "area"])
    def test_uniform_color_survives_resampling(self, interpolation):
        grid = resample_to_grid(solid_image((255, 0, 0), 400, 300), interpolation=interpolation)
        assert grid.shape == (100, 100, 3)
        assert np.all(grid == [255, 0, 0])

    def test_upsamples_small_images(self):
        grid = resample_to_grid(solid_image((10, 20, 30), 3, 2))
        assert grid.shape == (100, 100, 3)

    def test_returns_copy_when_already_sized(self, noise_image):
        grid = resample_to_grid(noise_image)
        assert grid is not noise_image
        np.testing.assert_array_equal(grid, noise_image)

    def test_unknown_interpolation(self, noise_image):
        with pytest.raises(ValueError):
            resample_to_grid(noise_image, interpolation="cubic-ish")


class TestNormalizeImage:
    def test_float_image_scaled(self):
        img = np.ones((4, 4, 3), dtype=np.float32)
        assert normalize_image(img).max() == 255

    def test_grayscale_stacked(self):
        img = np.zeros((4, 4), dtype=np.uint8)
        assert normalize_image(img).shape == (4, 4, 3)

    def test_bad_shape_raises(self):
        with pytest.raises(ValueError):
            normalize_image(np.zeros((4, 4, 2), dtype=np.uint8))


def test_decode_to_grid(pure_red_png):
    grid = decode_to_grid(pure_red_png)
    assert grid.shape == (100, 100, 3)
    assert grid.dtype == np.uint8
