"""Tests for near-duplicate detection against recent titles."""

import pytest

from blogengine.trender.dedup import find_duplicate, is_duplicate, overlap_ratio, significant_words


class TestSignificantWords:

    def test_drops_short_words(self):
        assert significant_words("Tips for a glowing skin") == {"tips", "glowing", "skin"}

    def test_preserve_words_kept(self):
        words = significant_words("SPF for men", preserve_words={"spf", "men"})
        assert words == {"spf", "men"}

    def test_custom_min_length(self):
        assert significant_words("lip oil balm", min_length=2) == {"lip", "oil", "balm"}

    def test_empty(self):
        assert significant_words("") == set()


class TestOverlapRatio:

    def test_uses_smaller_set(self):
        assert overlap_ratio({"a", "b"}, {"a", "b", "c", "d"}) == 1.0

    def test_empty_sets_never_overlap(self):
        assert overlap_ratio(set(), {"skin"}) == 0.0
        assert overlap_ratio({"skin"}, set()) == 0.0


class TestIsDuplicate:

    def test_similar_titles_flagged(self):
        recent = ["skincare routine tips for glowing skin"]
        assert is_duplicate("Morning Skincare Routine For Glowing Skin", recent)

    def test_unrelated_titles_not_flagged(self):
        assert not is_duplicate("Nail Art Designs", ["Eyebrow Shaping Tips"])

    def test_any_single_match_is_enough(self):
        recent = ["Eyebrow Shaping Tips", "Best Drugstore Mascara", "Nail Art Designs For Fall"]
        assert find_duplicate("Nail Art Designs", recent) == "Nail Art Designs For Fall"

    def test_empty_corpus(self):
        assert not is_duplicate("Retinol Tips", [])

    def test_topic_without_significant_words(self):
        assert not is_duplicate("a to z", ["a to z"])

    def test_short_recent_title_flags_broad_topic(self):
        # Known sharp edge: the min() denominator lets a two-word recent
        # title flag a much broader candidate that contains both words.
        assert is_duplicate("Retinol Serum Guide For Beginners And Experts", ["Retinol Serum"])

    def test_threshold_is_inclusive(self):
        # 7 of 10 words shared
        candidate = "alpha bravo charlie delta foxtrot hotel india juliet kilo lima"
        recent = "alpha bravo charlie delta foxtrot hotel india mike november oscar"
        assert overlap_ratio(significant_words(candidate), significant_words(recent)) == pytest.approx(0.7)
        assert is_duplicate(candidate, [recent])
        assert not is_duplicate(candidate, [recent], threshold=0.71)

    def test_preserve_words_change_outcome(self):
        # Without "men" the candidate reduces to {"skincare"} and matches
        assert is_duplicate("Skincare For Men", ["Skincare For Women"])
        assert not is_duplicate(
            "Skincare For Men",
            ["Skincare For Women"],
            preserve_words={"men", "women"},
            threshold=0.7,
        )
