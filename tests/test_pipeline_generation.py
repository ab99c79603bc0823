"""Tests for the generation run orchestration."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from blogengine.core.errors import SourceUnavailable
from blogengine.migrator.geo import GeoSweep
from blogengine.pipeline.assembler import DraftAssembler
from blogengine.pipeline.generation import GenerationPipeline
from blogengine.rewriter.generator import ContentGenerator
from blogengine.trender.config import TrendsConfig
from blogengine.trender.models import Platform, TrendCandidate
from tests.fakes import ARTICLE_REPLY, FakeSource, ScriptedProvider, full_replies, no_sleep


def build_pipeline(gateway, sources, provider=None, followups=(), sleep=no_sleep):
    generator = ContentGenerator(provider or ScriptedProvider(full_replies()))
    return GenerationPipeline(
        gateway,
        sources,
        DraftAssembler(generator, gateway),
        TrendsConfig(),
        articles_per_run=5,
        followups=followups,
        sleep=sleep,
    )


class TestGenerationPipeline:

    @pytest.mark.asyncio
    async def test_same_topic_from_two_sources_creates_one_draft(self, gateway):
        sources = [
            FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips", trending_score=100)]),
            FakeSource(Platform.YOUTUBE, [TrendCandidate(topic="Retinol Tips", trending_score=50)]),
        ]
        result = await build_pipeline(gateway, sources).run()

        assert result.success
        assert result.articles_generated == 1
        assert result.errors == 0
        assert result.total_trends == 2
        assert result.unique_trends == 1
        assert len(gateway.created) == 1

        doc = gateway.documents[gateway.created[0]]
        assert doc["showOnSite"] is False
        assert doc["autoGenerated"] is True
        assert doc["trendSource"]["platform"] == "tiktok"
        assert doc["trendSource"]["trendingScore"] == 100

        outcome = result.to_dict()["topics"][0]
        assert outcome["created"] is True
        assert outcome["id"] == gateway.created[0]

    @pytest.mark.asyncio
    async def test_no_configured_sources_fails(self, gateway):
        sources = [FakeSource(Platform.TIKTOK, configured=False)]
        result = await build_pipeline(gateway, sources).run()

        assert result.success is False
        assert result.message == "No trend sources configured"

    @pytest.mark.asyncio
    async def test_all_sources_failing_fails_the_run(self, gateway):
        sources = [
            FakeSource(Platform.TIKTOK, error=SourceUnavailable("tiktok", "down")),
            FakeSource(Platform.YOUTUBE, error=RuntimeError("boom")),
        ]
        result = await build_pipeline(gateway, sources).run()

        assert result.success is False
        assert result.message == "All trend sources failed"
        assert result.sources.failed == {"tiktok": "down", "youtube": "boom"}

    @pytest.mark.asyncio
    async def test_no_trends_is_successful_empty_run(self, gateway):
        result = await build_pipeline(gateway, [FakeSource(Platform.TIKTOK, [])]).run()

        assert result.success is True
        assert result.articles_generated == 0
        assert result.message == "No trends found"

    @pytest.mark.asyncio
    async def test_no_relevant_trends(self, gateway):
        sources = [FakeSource(Platform.YOUTUBE, [TrendCandidate(topic="Quarterly earnings call")])]
        result = await build_pipeline(gateway, sources).run()

        assert result.success is True
        assert result.message == "No relevant trends found"

    @pytest.mark.asyncio
    async def test_already_covered_topics_skipped(self, gateway):
        gateway.add({"title": "Retinol Tips", "keyTakeaways": [1], "faqSection": [1], "quickAnswer": "x"})
        sources = [FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])]
        result = await build_pipeline(gateway, sources).run()

        assert result.success is True
        assert result.message == "All relevant topics were already covered"
        assert gateway.created == []

    @pytest.mark.asyncio
    async def test_topic_failure_does_not_abort_run(self, gateway):
        def article(prompt):
            return "nonsense" if "Nail Art Designs" in prompt else ARTICLE_REPLY

        replies = full_replies()
        replies["article"] = article
        sleeps = []

        async def record_sleep(seconds):
            sleeps.append(seconds)

        sources = [FakeSource(Platform.TIKTOK, [
            TrendCandidate(topic="Nail Art Designs", trending_score=100),
            TrendCandidate(topic="Retinol Tips", trending_score=50),
        ])]
        pipeline = build_pipeline(gateway, sources, provider=ScriptedProvider(replies), sleep=record_sleep)
        pipeline.topic_delay_seconds = 2.0
        result = await pipeline.run()

        assert result.success is True
        assert result.articles_generated == 1
        assert result.errors == 1
        assert [t.topic for t in result.topics] == ["Nail Art Designs", "Retinol Tips"]
        assert result.topics[0].error
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_create_failure_recorded(self, gateway):
        gateway.fail_create = True
        sources = [FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])]
        result = await build_pipeline(gateway, sources).run()

        assert result.articles_generated == 0
        assert result.errors == 1
        assert "create failed" in result.topics[0].error

    @pytest.mark.asyncio
    async def test_recent_titles_failure_fails_run(self, gateway):
        gateway.fail_queries = True
        sources = [FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])]
        result = await build_pipeline(gateway, sources).run()

        assert result.success is False
        assert "recent articles" in result.message

    @pytest.mark.asyncio
    async def test_followup_sweeps_run_after_generation(self, gateway):
        legacy_id = gateway.add({"title": "Gua Sha 101", "publishedAt": "2023-01-01T00:00:00+00:00"})
        provider = ScriptedProvider(full_replies())
        sweep = GeoSweep(gateway, ContentGenerator(provider), sleep=no_sleep)
        sources = [FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])]

        result = await build_pipeline(gateway, sources, followups=[sweep]).run()

        assert result.articles_generated == 1
        assert result.migrations["geo"]["updated"] == 1
        assert gateway.documents[legacy_id]["quickAnswer"]
        assert result.to_dict()["migrations"]["geo"]["articles"][0]["title"] == "Gua Sha 101"

    @pytest.mark.asyncio
    async def test_raising_followup_keeps_generation_outcome(self, gateway):
        broken = MagicMock()
        broken.name = "references"
        broken.run = AsyncMock(side_effect=RuntimeError("sweep crashed"))
        legacy_id = gateway.add({"title": "Gua Sha 101", "publishedAt": "2023-01-01T00:00:00+00:00"})
        geo = GeoSweep(gateway, ContentGenerator(ScriptedProvider(full_replies())), sleep=no_sleep)
        sources = [FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips")])]

        result = await build_pipeline(gateway, sources, followups=[broken, geo]).run()

        assert result.success
        assert result.articles_generated == 1
        assert result.migrations["references"] == {"kind": "references", "success": False, "error": "sweep crashed"}
        assert result.migrations["geo"]["updated"] == 1
        assert gateway.documents[legacy_id]["quickAnswer"]
