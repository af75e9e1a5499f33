"""
Similarity scoring and ranking for photo search results.

Combines two signals into one similarity in [0, 1]:
    - histogram correlation, which tolerates framing and crop differences
    - mean per-pixel RGB distance, which rewards near-identical images

The histogram term carries more weight because position-sensitive
comparison on a 100x100 grid is fragile. Weights, the similarity floor
and the result cap are loaded from the environment so they can be tuned
without code changes; the defaults are empirical.
"""

import os
import math
import logging
from typing import Dict, List

import numpy as np

from .histograms import histogram_correlation
from .models import ImageDescriptor, MatchResult

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    "histogram": float(os.environ.get("PHOTO_SEARCH_HIST_WEIGHT", "0.6")),
    "color":     float(os.environ.get("PHOTO_SEARCH_COLOR_WEIGHT", "0.4")),
}

# Candidates must score strictly above this to count as a match
SIMILARITY_FLOOR = float(os.environ.get("PHOTO_SEARCH_SIMILARITY_FLOOR", "0.3"))
MAX_RESULTS = int(os.environ.get("PHOTO_SEARCH_MAX_RESULTS", "10"))

# Largest possible Euclidean distance between two RGB pixels
MAX_COLOR_DISTANCE = 255 * math.sqrt(3)


def color_similarity(grid1: np.ndarray, grid2: np.ndarray) -> float:
    """
    Similarity from the mean per-pixel Euclidean RGB distance.

    Args:
        grid1: uint8 RGB grid.
        grid2: uint8 RGB grid of the same shape.

    Returns:
        1 - mean_distance / (255 * sqrt(3)), clamped at 0.

    Raises:
        ValueError: If the grids are not aligned.
    """
    if grid1.shape[:2] != grid2.shape[:2]:
        raise ValueError(f"Grid shapes differ: {grid1.shape} vs {grid2.shape}")

    diff = grid1[..., :3].astype(np.float64) - grid2[..., :3].astype(np.float64)
    distances = np.sqrt(np.sum(diff * diff, axis=-1))
    avg_distance = float(distances.mean())

    return max(0.0, 1.0 - avg_distance / MAX_COLOR_DISTANCE)


def combine_scores(histogram_similarity: float,
                   color_sim: float,
                   weights: Dict[str, float] = None) -> float:
    """Weighted sum of the two signals."""
    weights = weights or DEFAULT_WEIGHTS
    return float(
        weights["histogram"] * histogram_similarity
        + weights["color"] * color_sim
    )


def compute_similarity(query: ImageDescriptor,
                       candidate: ImageDescriptor,
                       weights: Dict[str, float] = None) -> float:
    """
    Score one query/candidate pair.

    Symmetric in its arguments and deterministic for fixed inputs.

    Args:
        query: Query grid and histogram.
        candidate: Candidate grid and histogram.
        weights: Optional override for DEFAULT_WEIGHTS.

    Returns:
        Similarity, 1.0 for identical descriptors.
    """
    hist_sim = histogram_correlation(query.histogram, candidate.histogram)
    color_sim = color_similarity(query.grid, candidate.grid)
    return combine_scores(hist_sim, color_sim, weights)


def rank_results(results: List[MatchResult],
                 floor: float = None,
                 max_results: int = None) -> List[MatchResult]:
    """
    Filter, sort and truncate scored candidates.

    Keeps results whose similarity is strictly greater than the floor,
    orders them by similarity (highest first, ties keep input order) and
    returns at most max_results of them.

    Args:
        results: Scored candidates in any order.
        floor: Similarity floor. Defaults to SIMILARITY_FLOOR.
        max_results: Result cap. Defaults to MAX_RESULTS.

    Returns:
        Ranked list, possibly empty.
    """
    floor = SIMILARITY_FLOOR if floor is None else floor
    max_results = MAX_RESULTS if max_results is None else max_results

    kept = [r for r in results if r.similarity > floor]
    ranked = sorted(kept, key=lambda r: -r.similarity)

    logger.debug(f"Ranking: {len(results)} scored, {len(kept)} above {floor}")
    return ranked[:max_results]
