"""Trend aggregation: merge sources, score, rank, deduplicate, truncate.

Flow for one run:
1. Collect: fetch every configured source; a failing source contributes nothing
2. Merge: flatten per-source lists, tagging each candidate with its platform
3. Score: keyword relevance, dropping candidates under the minimum
4. Rank: stable sort by relevance x trending score, descending
5. Collapse: keep the best-ranked candidate per topic identity
6. Dedup: drop near-duplicates of recently published titles
7. Truncate to the batch size
"""

from dataclasses import dataclass, field
from typing import Collection, Dict, List, Mapping, Optional, Sequence

from blogengine.core.errors import SourceUnavailable
from blogengine.core.logging import get_logger
from .dedup import DUPLICATE_THRESHOLD, find_duplicate
from .models import Platform, SelectedTopic, TrendCandidate
from .score import calculate_relevance_score
from .sources import TrendSource

logger = get_logger(__name__)

DEFAULT_MIN_RELEVANCE = 0.1


@dataclass
class SourceReport:
    """What happened to each source during collection."""
    fetched: Dict[str, int] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        """True when at least one source was tried and every tried source failed."""
        return bool(self.failed) and not self.fetched

    def to_dict(self) -> Dict[str, object]:
        return {'fetched': self.fetched, 'skipped': self.skipped, 'failed': self.failed}


@dataclass
class AggregationResult:
    """Selected topics plus the counts behind them."""
    selected: List[SelectedTopic]
    total_trends: int = 0
    relevant_trends: int = 0
    unique_trends: int = 0
    new_topics: int = 0
    duplicates: Dict[str, str] = field(default_factory=dict)


async def collect_trends(sources: Sequence[TrendSource]) -> tuple[Dict[Platform, List[TrendCandidate]], SourceReport]:
    """Fetch every configured source, isolating failures per source."""
    trends_by_source: Dict[Platform, List[TrendCandidate]] = {}
    report = SourceReport()

    for source in sources:
        if not source.is_configured:
            logger.info(f"Skipping {source.name} (not configured)")
            report.skipped.append(source.name)
            continue

        try:
            trends = await source.fetch()
        except SourceUnavailable as e:
            logger.warning(f"{source.name} unavailable: {e.reason}")
            report.failed[source.name] = e.reason
            continue
        except Exception as e:
            logger.error(f"{source.name} fetch failed: {e}")
            report.failed[source.name] = str(e)
            continue

        logger.info(f"Found {len(trends)} {source.name} trends")
        trends_by_source[source.platform] = trends
        report.fetched[source.name] = len(trends)

    return trends_by_source, report


def merge_sources(raw_trends_by_source: Mapping[Platform, Sequence[TrendCandidate]]) -> List[TrendCandidate]:
    """Flatten per-source lists in source order, tagging each with its platform."""
    merged = []
    for platform, trends in raw_trends_by_source.items():
        for trend in trends:
            trend.platform = Platform(platform)
            if trend.is_valid:
                merged.append(trend)
    return merged


def aggregate_with_stats(
    raw_trends_by_source: Mapping[Platform, Sequence[TrendCandidate]],
    keywords: Sequence[str],
    recent_titles: Sequence[str],
    batch_size: int,
    min_relevance: float = DEFAULT_MIN_RELEVANCE,
    duplicate_threshold: float = DUPLICATE_THRESHOLD,
    preserve_words: Collection[str] = (),
) -> AggregationResult:
    """Run the full selection and keep the intermediate counts."""
    merged = merge_sources(raw_trends_by_source)

    relevant = []
    for trend in merged:
        trend.relevance_score = calculate_relevance_score(trend, keywords)
        if trend.relevance_score >= min_relevance:
            relevant.append(trend)
        else:
            logger.debug(f"Dropping '{trend.topic}' (relevance {trend.relevance_score:.2f})")

    # sorted() is stable: ties keep source order
    ranked = sorted(relevant, key=lambda t: t.ranking_score, reverse=True)

    unique = []
    seen = set()
    for trend in ranked:
        if trend.identity in seen:
            continue
        seen.add(trend.identity)
        unique.append(trend)

    fresh = []
    duplicates: Dict[str, str] = {}
    for trend in unique:
        match = find_duplicate(trend.topic, recent_titles, duplicate_threshold, preserve_words=preserve_words)
        if match is not None:
            logger.info(f"Skipping '{trend.topic}' (too similar to '{match}')")
            duplicates[trend.topic] = match
            continue
        fresh.append(trend)

    selected = [
        SelectedTopic.from_candidate(trend, rank=index + 1)
        for index, trend in enumerate(fresh[:max(0, batch_size)])
    ]

    logger.info(
        f"Aggregated {len(merged)} trends: {len(relevant)} relevant, "
        f"{len(unique)} unique, {len(fresh)} new, {len(selected)} selected"
    )

    return AggregationResult(
        selected=selected,
        total_trends=len(merged),
        relevant_trends=len(relevant),
        unique_trends=len(unique),
        new_topics=len(fresh),
        duplicates=duplicates,
    )


def aggregate(
    raw_trends_by_source: Mapping[Platform, Sequence[TrendCandidate]],
    keywords: Sequence[str],
    recent_titles: Sequence[str],
    batch_size: int,
    min_relevance: float = DEFAULT_MIN_RELEVANCE,
    duplicate_threshold: float = DUPLICATE_THRESHOLD,
    preserve_words: Optional[Collection[str]] = None,
) -> List[SelectedTopic]:
    """Select up to ``batch_size`` relevant, unique, unpublished topics."""
    return aggregate_with_stats(
        raw_trends_by_source,
        keywords,
        recent_titles,
        batch_size,
        min_relevance=min_relevance,
        duplicate_threshold=duplicate_threshold,
        preserve_words=preserve_words or (),
    ).selected
