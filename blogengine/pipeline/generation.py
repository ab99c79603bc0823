"""
Generation run: trends in, hidden article drafts out.

Stages for one run:
1. Recent titles: load what was published recently, for deduplication
2. Collect: fetch every configured trend source
3. Select: score, rank, deduplicate and truncate (trender.aggregator)
4. Draft: assemble and create one draft per topic, with a fixed delay between topics
5. Backfill: run the follow-up enrichment sweeps
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from blogengine.core.errors import PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings
from blogengine.migrator.engine import EnrichmentSweep, Sleeper
from blogengine.publisher.gateway import PersistenceGateway
from blogengine.trender.aggregator import SourceReport, aggregate_with_stats, collect_trends
from blogengine.trender.config import TrendsConfig
from blogengine.trender.models import SelectedTopic
from blogengine.trender.sources import TrendSource
from .assembler import DraftAssembler

logger = get_logger(__name__)


@dataclass
class TopicOutcome:
    """What happened to one selected topic."""
    topic: str
    platform: Optional[str]
    created: bool
    title: Optional[str] = None
    slug: Optional[str] = None
    doc_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'topic': self.topic,
            'platform': self.platform,
            'created': self.created,
            'title': self.title,
            'slug': self.slug,
            'id': self.doc_id,
            'error': self.error,
        }


@dataclass
class GenerationResult:
    """Summary of one generation run."""
    success: bool = True
    message: str = ""
    articles_generated: int = 0
    errors: int = 0
    total_trends: int = 0
    relevant_trends: int = 0
    unique_trends: int = 0
    new_topics: int = 0
    topics: List[TopicOutcome] = field(default_factory=list)
    sources: SourceReport = field(default_factory=SourceReport)
    migrations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    runtime_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'articlesGenerated': self.articles_generated,
            'errors': self.errors,
            'totalTrends': self.total_trends,
            'relevantTrends': self.relevant_trends,
            'uniqueTrends': self.unique_trends,
            'newTopics': self.new_topics,
            'topics': [t.to_dict() for t in self.topics],
            'sources': self.sources.to_dict(),
            'migrations': self.migrations,
            'runtimeSeconds': self.runtime_seconds,
        }


class GenerationPipeline:
    """Orchestrates one trend-to-draft generation run."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        sources: Sequence[TrendSource],
        assembler: DraftAssembler,
        trends_config: TrendsConfig,
        articles_per_run: int = 5,
        min_relevance: float = 0.1,
        recent_days: int = 30,
        topic_delay_seconds: float = 2.0,
        followups: Sequence[EnrichmentSweep] = (),
        sleep: Optional[Sleeper] = None,
    ):
        self.gateway = gateway
        self.sources = list(sources)
        self.assembler = assembler
        self.trends_config = trends_config
        self.articles_per_run = articles_per_run
        self.min_relevance = min_relevance
        self.recent_days = recent_days
        self.topic_delay_seconds = topic_delay_seconds
        self.followups = list(followups)
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        gateway: PersistenceGateway,
        sources: Sequence[TrendSource],
        assembler: DraftAssembler,
        trends_config: TrendsConfig,
        followups: Sequence[EnrichmentSweep] = (),
    ) -> "GenerationPipeline":
        return cls(
            gateway,
            sources,
            assembler,
            trends_config,
            articles_per_run=settings.articles_per_run,
            min_relevance=settings.min_relevance_score,
            recent_days=settings.recent_days,
            topic_delay_seconds=settings.topic_delay_seconds,
            followups=followups,
        )

    async def run(self) -> GenerationResult:
        """Run the pipeline, then the follow-up sweeps."""
        start_time = time.time()
        result = await self._generate()
        result.runtime_seconds = round(time.time() - start_time, 2)

        logger.info(
            f"Generation run finished in {result.runtime_seconds}s: "
            f"{result.articles_generated} draft(s), {result.errors} error(s). {result.message}"
        )

        # A failing sweep never overwrites the outcome of the drafts already created
        for sweep in self.followups:
            try:
                sweep_result = await sweep.run()
            except Exception as e:
                logger.exception(f"Follow-up sweep '{sweep.name}' failed")
                result.migrations[sweep.name] = {'kind': sweep.name, 'success': False, 'error': str(e)}
                continue
            result.migrations[sweep.name] = sweep_result.to_dict()

        return result

    async def _generate(self) -> GenerationResult:
        result = GenerationResult()

        if not any(source.is_configured for source in self.sources):
            result.success = False
            result.message = "No trend sources configured"
            return result

        try:
            recent_titles = await self.gateway.recent_titles(self.recent_days)
        except PersistenceFailure as e:
            logger.error(f"Could not load recent articles: {e}")
            result.success = False
            result.message = f"Could not load recent articles: {e}"
            return result
        logger.info(f"Loaded {len(recent_titles)} recent title(s) for deduplication")

        raw_trends, report = await collect_trends(self.sources)
        result.sources = report

        if report.all_failed:
            result.success = False
            result.message = "All trend sources failed"
            return result

        aggregation = aggregate_with_stats(
            raw_trends,
            keywords=self.trends_config.keywords,
            recent_titles=recent_titles,
            batch_size=self.articles_per_run,
            min_relevance=self.min_relevance,
            duplicate_threshold=self.trends_config.duplicate_threshold,
            preserve_words=self.trends_config.dedup_preserve_words,
        )
        result.total_trends = aggregation.total_trends
        result.relevant_trends = aggregation.relevant_trends
        result.unique_trends = aggregation.unique_trends
        result.new_topics = aggregation.new_topics

        if not aggregation.selected:
            if not aggregation.total_trends:
                result.message = "No trends found"
            elif not aggregation.relevant_trends:
                result.message = "No relevant trends found"
            else:
                result.message = "All relevant topics were already covered"
            logger.info(result.message)
            return result

        for index, topic in enumerate(aggregation.selected):
            if index:
                await self._sleep(self.topic_delay_seconds)
            outcome = await self._draft_topic(topic)
            result.topics.append(outcome)
            if outcome.created:
                result.articles_generated += 1
            else:
                result.errors += 1

        result.message = f"Generated {result.articles_generated} of {len(aggregation.selected)} article(s)"
        return result

    async def _draft_topic(self, topic: SelectedTopic) -> TopicOutcome:
        """Assemble and store one topic; failures are recorded, never raised."""
        platform = topic.platform.value if topic.platform else None
        logger.info(f"[{topic.rank}] Drafting '{topic.topic}' from {platform}")

        try:
            draft = await self.assembler.assemble(topic)
            doc_id = await self.gateway.create(draft)
        except Exception as e:
            logger.error(f"Topic '{topic.topic}' failed: {e}")
            return TopicOutcome(topic=topic.topic, platform=platform, created=False, error=str(e))

        return TopicOutcome(
            topic=topic.topic,
            platform=platform,
            created=True,
            title=draft.title,
            slug=draft.slug,
            doc_id=doc_id,
        )
