"""
Luminance histogram extraction and correlation.

Each pixel grid is reduced to a 256-bin grayscale histogram using the
ITU-R BT.601 luma weights (0.299 R + 0.587 G + 0.114 B), normalized by
pixel count so that it sums to 1. Two histograms are compared with a
Pearson-style correlation clamped below at zero: negative correlation
means "not similar", never "anti-similar".
"""

import logging

import numpy as np

from .models import ImageDescriptor

logger = logging.getLogger(__name__)

HIST_BINS = 256

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def to_luminance_histogram(grid: np.ndarray) -> np.ndarray:
    """
    Compute the normalized luminance histogram of an RGB pixel grid.

    Grayscale values are rounded half-up to the nearest integer bin.

    Args:
        grid: uint8 array of shape (H, W, 3) or (H, W, 4); alpha is ignored.

    Returns:
        Float64 array of HIST_BINS frequencies summing to 1.

    Raises:
        ValueError: If the grid has no pixels.
    """
    pixels = grid.reshape(-1, grid.shape[-1])[:, :3].astype(np.float64)
    if pixels.shape[0] == 0:
        raise ValueError("Cannot build a histogram from an empty grid")

    gray = np.floor(pixels @ LUMA_WEIGHTS + 0.5)
    gray = np.clip(gray, 0, HIST_BINS - 1).astype(np.int64)

    counts = np.bincount(gray, minlength=HIST_BINS).astype(np.float64)
    return counts / pixels.shape[0]


def histogram_correlation(h1: np.ndarray, h2: np.ndarray) -> float:
    """
    Correlation between two histograms, clamped to [0, 1].

    num = sum(h1*h2) - sum(h1)*sum(h2)/n
    den = sqrt((sum(h1^2) - sum(h1)^2/n) * (sum(h2^2) - sum(h2)^2/n))

    Returns 0 when either histogram is flat (den == 0).
    """
    h1 = np.asarray(h1, dtype=np.float64)
    h2 = np.asarray(h2, dtype=np.float64)
    if h1.shape != h2.shape:
        raise ValueError(f"Histogram shapes differ: {h1.shape} vs {h2.shape}")

    n = h1.size
    sum1, sum2 = h1.sum(), h2.sum()
    num = float(np.dot(h1, h2)) - sum1 * sum2 / n
    var_product = (float(np.dot(h1, h1)) - sum1 * sum1 / n) * (float(np.dot(h2, h2)) - sum2 * sum2 / n)
    if var_product <= 0:
        return 0.0

    return float(min(1.0, max(0.0, num / np.sqrt(var_product))))


def extract_descriptor(grid: np.ndarray) -> ImageDescriptor:
    """Bundle a pixel grid with its luminance histogram."""
    return ImageDescriptor(grid=grid, histogram=to_luminance_histogram(grid))
