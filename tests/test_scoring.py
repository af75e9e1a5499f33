"""Tests for similarity scoring and ranking."""

import numpy as np
import pytest

from photo_search.histograms import extract_descriptor
from photo_search.models import MatchResult
from photo_search.scoring import (
    color_similarity, combine_scores, compute_similarity, rank_results,
)

from conftest import make_candidate, solid_image


def _result(similarity, candidate_id="c"):
    return MatchResult(candidate=make_candidate("x.png", candidate_id), similarity=similarity)


class TestColorSimilarity:
    """Tests for the mean RGB distance term."""

    def test_identical_grids(self, noise_image):
        assert color_similarity(noise_image, noise_image.copy()) == 1.0

    def test_black_vs_white_is_zero(self):
        black = solid_image((0, 0, 0))
        white = solid_image((255, 255, 255))
        assert color_similarity(black, white) == pytest.approx(0.0, abs=1e-9)

    def test_half_distance(self):
        black = solid_image((0, 0, 0))
        mid = solid_image((0, 0, 255))
        # 255 / (255 * sqrt(3))
        expected = 1 - 1 / np.sqrt(3)
        assert color_similarity(black, mid) == pytest.approx(expected)

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError):
            color_similarity(solid_image((0, 0, 0)), solid_image((0, 0, 0), 50, 50))


class TestComputeSimilarity:
    """Tests for the combined score."""

    def test_self_similarity_is_one(self, noise_image):
        desc = extract_descriptor(noise_image)
        assert compute_similarity(desc, desc) == pytest.approx(1.0)

    def test_symmetric(self, red_square_image, blue_circle_image):
        a = extract_descriptor(red_square_image)
        b = extract_descriptor(blue_circle_image)
        assert compute_similarity(a, b) == compute_similarity(b, a)

    def test_deterministic(self, red_square_image, noise_image):
        a = extract_descriptor(red_square_image[:100, :100].copy())
        b = extract_descriptor(noise_image)
        assert compute_similarity(a, b) == compute_similarity(a, b)

    def test_within_range(self, red_square_image, blue_circle_image):
        descs = [extract_descriptor(red_square_image), extract_descriptor(blue_circle_image)]
        for a in descs:
            for b in descs:
                assert 0.0 <= compute_similarity(a, b) <= 1.0 + 1e-12

    def test_black_vs_white_below_floor(self):
        black = extract_descriptor(solid_image((0, 0, 0)))
        white = extract_descriptor(solid_image((255, 255, 255)))
        assert compute_similarity(black, white) < 0.3

    def test_custom_weights(self):
        red = extract_descriptor(solid_image((255, 0, 0)))
        assert compute_similarity(red, red, weights={"histogram": 1.0, "color": 0.0}) == pytest.approx(1.0)

    def test_combine_default_weights(self):
        assert combine_scores(1.0, 0.0) == pytest.approx(0.6)
        assert combine_scores(0.0, 1.0) == pytest.approx(0.4)


class TestRankResults:
    """Tests for floor filtering, ordering and truncation."""

    def test_ranks_by_similarity_descending(self):
        ranked = rank_results([_result(0.5, "a"), _result(0.8, "b"), _result(0.4, "c")])
        assert [r.candidate.id for r in ranked] == ["b", "a", "c"]

    def test_floor_is_strict(self):
        ranked = rank_results([_result(0.3, "at"), _result(0.30000001, "above")])
        assert [r.candidate.id for r in ranked] == ["above"]

    def test_caps_at_ten_highest(self):
        results = [_result(0.31 + i * 0.01, str(i)) for i in range(50)]
        ranked = rank_results(results)
        assert len(ranked) == 10
        assert [r.candidate.id for r in ranked] == [str(i) for i in range(49, 39, -1)]

    def test_ties_keep_input_order(self):
        ranked = rank_results([_result(0.7, "first"), _result(0.7, "second")])
        assert [r.candidate.id for r in ranked] == ["first", "second"]

    def test_custom_floor_and_cap(self):
        results = [_result(0.2, "a"), _result(0.25, "b"), _result(0.1, "c")]
        ranked = rank_results(results, floor=0.15, max_results=1)
        assert [r.candidate.id for r in ranked] == ["b"]

    def test_nothing_above_floor(self):
        assert rank_results([_result(0.0), _result(0.29)]) == []

    def test_empty_list(self):
        assert rank_results([]) == []
