"""Tests for keyword relevance scoring."""

import pytest

from blogengine.trender.models import Platform, TrendCandidate
from blogengine.trender.score import (
    calculate_relevance_score,
    candidate_text,
    keyword_weight,
    weight_to_score,
)


class TestWeightToScore:
    """Step table mapping."""

    @pytest.mark.parametrize("weight,expected", [
        (0, 0.0),
        (1, 0.15),
        (2, 0.30),
        (3, 0.45),
        (4, 0.60),
        (5, 0.70),
        (7, 0.90),
        (8, 1.0),
        (20, 1.0),
    ])
    def test_steps(self, weight, expected):
        assert weight_to_score(weight) == pytest.approx(expected)

    def test_negative_weight_is_zero(self):
        assert weight_to_score(-3) == 0.0

    def test_monotonic_in_weight(self):
        scores = [weight_to_score(w) for w in range(0, 15)]
        assert scores == sorted(scores)
        assert all(0.0 <= s <= 1.0 for s in scores)


class TestKeywordWeight:

    def test_multi_word_keywords_weigh_more(self):
        assert keyword_weight("my skincare routine", ["skincare routine"]) == 2
        assert keyword_weight("my skincare routine", ["skincare"]) == 1

    def test_substring_match(self):
        # "glow" is found inside "glowing"
        assert keyword_weight("glowing skin", ["glow"]) == 1

    def test_empty_text(self):
        assert keyword_weight("", ["makeup"]) == 0

    def test_blank_keywords_ignored(self):
        assert keyword_weight("makeup", ["", "   "]) == 0


class TestRelevanceScore:

    def test_no_matches_scores_zero(self):
        candidate = TrendCandidate(topic="Stock market update", platform=Platform.YOUTUBE)
        assert calculate_relevance_score(candidate, ["makeup", "skincare"]) == 0.0

    def test_weight_two_scores_exactly_030(self):
        candidate = TrendCandidate(topic="Retinol Serum", platform=Platform.TIKTOK)
        assert calculate_relevance_score(candidate, ["retinol", "serum", "makeup"]) == 0.30

    def test_text_includes_title_description_and_tags(self):
        candidate = TrendCandidate(
            topic="Night routine",
            title="My Night Routine",
            description="with retinol",
            tags=["SPF"],
        )
        text = candidate_text(candidate)
        assert "retinol" in text
        assert "spf" in text
        assert calculate_relevance_score(candidate, ["routine", "retinol", "spf"]) == 0.45

    def test_deterministic(self):
        candidate = TrendCandidate(topic="Glass skin makeup", tags=["glow"])
        keywords = ["skin", "makeup", "glow"]
        assert calculate_relevance_score(candidate, keywords) == calculate_relevance_score(candidate, keywords)


class TestTrendCandidate:

    def test_missing_trending_score_defaults_to_one(self):
        assert TrendCandidate(topic="x", trending_score=0).trending_score == 1.0
        assert TrendCandidate(topic="x", trending_score=-5).trending_score == 1.0

    def test_topic_normalized(self):
        candidate = TrendCandidate(topic="  Glass   Skin  ")
        assert candidate.topic == "Glass Skin"
        assert candidate.identity == "glass skin"

    def test_empty_topic_is_invalid(self):
        assert not TrendCandidate(topic="   ").is_valid
