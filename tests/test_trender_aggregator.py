"""Tests for trend aggregation and source collection."""

import pytest

from blogengine.core.errors import SourceUnavailable
from blogengine.trender.aggregator import aggregate, aggregate_with_stats, collect_trends
from blogengine.trender.models import Platform, TrendCandidate
from tests.fakes import FakeSource

KEYWORDS = ["retinol", "skincare", "makeup", "nail", "serum", "routine"]


class TestAggregate:

    def test_same_topic_from_two_sources_selected_once(self):
        raw = {
            Platform.TIKTOK: [TrendCandidate(topic="Retinol Tips", trending_score=100)],
            Platform.YOUTUBE: [TrendCandidate(topic="Retinol Tips", trending_score=50)],
        }
        selected = aggregate(raw, KEYWORDS, recent_titles=[], batch_size=5)

        assert len(selected) == 1
        assert selected[0].topic == "Retinol Tips"
        # Higher-ranked copy survives
        assert selected[0].platform == Platform.TIKTOK
        assert selected[0].trending_score == 100

    def test_sorted_by_relevance_times_trending(self):
        raw = {
            Platform.TIKTOK: [
                TrendCandidate(topic="Nail Art", trending_score=10),
                TrendCandidate(topic="Retinol Serum Routine", trending_score=10),
            ],
        }
        selected = aggregate(raw, KEYWORDS, [], batch_size=5)
        assert [t.topic for t in selected] == ["Retinol Serum Routine", "Nail Art"]
        assert [t.rank for t in selected] == [1, 2]

    def test_ties_keep_source_order(self):
        raw = {
            Platform.TIKTOK: [TrendCandidate(topic="Nail Polish", trending_score=10)],
            Platform.INSTAGRAM: [TrendCandidate(topic="Nail Stickers", trending_score=10)],
            Platform.YOUTUBE: [TrendCandidate(topic="Nail Gems", trending_score=10)],
        }
        selected = aggregate(raw, KEYWORDS, [], batch_size=5)
        assert [t.topic for t in selected] == ["Nail Polish", "Nail Stickers", "Nail Gems"]
        assert [t.platform for t in selected] == [Platform.TIKTOK, Platform.INSTAGRAM, Platform.YOUTUBE]

    def test_below_min_relevance_dropped(self):
        raw = {Platform.YOUTUBE: [
            TrendCandidate(topic="Election results", trending_score=1000),
            TrendCandidate(topic="Makeup Haul", trending_score=1),
        ]}
        selected = aggregate(raw, KEYWORDS, [], batch_size=5, min_relevance=0.1)
        assert [t.topic for t in selected] == ["Makeup Haul"]

    def test_recent_duplicates_dropped(self):
        raw = {Platform.TIKTOK: [
            TrendCandidate(topic="Morning Skincare Routine For Glowing Skin", trending_score=100),
            TrendCandidate(topic="Nail Art Designs", trending_score=10),
        ]}
        result = aggregate_with_stats(
            raw, KEYWORDS, recent_titles=["skincare routine tips for glowing skin"], batch_size=5,
        )
        assert [t.topic for t in result.selected] == ["Nail Art Designs"]
        assert result.duplicates == {
            "Morning Skincare Routine For Glowing Skin": "skincare routine tips for glowing skin",
        }
        assert result.unique_trends == 2
        assert result.new_topics == 1

    def test_truncated_to_batch_size(self):
        raw = {Platform.TIKTOK: [
            TrendCandidate(topic=f"Makeup Look {i}", trending_score=100 - i) for i in range(10)
        ]}
        selected = aggregate(raw, KEYWORDS, [], batch_size=3)
        assert [t.topic for t in selected] == ["Makeup Look 0", "Makeup Look 1", "Makeup Look 2"]

    def test_platform_tagged_from_source(self):
        raw = {Platform.INSTAGRAM: [TrendCandidate(topic="Makeup Reels")]}
        assert aggregate(raw, KEYWORDS, [], batch_size=1)[0].platform == Platform.INSTAGRAM

    def test_invalid_candidates_skipped(self):
        raw = {Platform.TIKTOK: [TrendCandidate(topic="  "), TrendCandidate(topic="Makeup")]}
        result = aggregate_with_stats(raw, KEYWORDS, [], batch_size=5)
        assert result.total_trends == 1

    def test_empty_input(self):
        result = aggregate_with_stats({}, KEYWORDS, [], batch_size=5)
        assert result.selected == []
        assert result.total_trends == 0


class TestCollectTrends:

    @pytest.mark.asyncio
    async def test_failing_source_contributes_nothing(self):
        ok = FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])
        broken = FakeSource(Platform.YOUTUBE, error=SourceUnavailable("youtube", "quota exceeded"))
        crashing = FakeSource(Platform.INSTAGRAM, error=RuntimeError("boom"))

        trends, report = await collect_trends([ok, broken, crashing])

        assert list(trends) == [Platform.TIKTOK]
        assert report.fetched == {"tiktok": 1}
        assert report.failed == {"youtube": "quota exceeded", "instagram": "boom"}
        assert not report.all_failed

    @pytest.mark.asyncio
    async def test_unconfigured_source_skipped_without_fetch(self):
        disabled = FakeSource(Platform.YOUTUBE, configured=False)
        trends, report = await collect_trends([disabled])

        assert trends == {}
        assert report.skipped == ["youtube"]
        assert disabled.fetch_calls == 0
        assert not report.all_failed

    @pytest.mark.asyncio
    async def test_all_failed(self):
        sources = [
            FakeSource(Platform.TIKTOK, error=SourceUnavailable("tiktok", "down")),
            FakeSource(Platform.YOUTUBE, error=SourceUnavailable("youtube", "down")),
        ]
        _, report = await collect_trends(sources)
        assert report.all_failed
