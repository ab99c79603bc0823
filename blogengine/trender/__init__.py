"""Trend collection and topic selection.

This package contains modules for:
- Trend records (models.py)
- Keyword relevance scoring (score.py)
- Near-duplicate detection against recent titles (dedup.py)
- Platform sources (sources.py)
- Selection of the topics to write about (aggregator.py)
"""

from .aggregator import AggregationResult, SourceReport, aggregate, aggregate_with_stats, collect_trends
from .config import TrendsConfig
from .dedup import is_duplicate, overlap_ratio
from .models import Platform, SelectedTopic, TrendCandidate
from .score import calculate_relevance_score
from .sources import InstagramSource, TikTokSource, TrendSource, YouTubeSource, build_trend_sources

__all__ = [
    'AggregationResult',
    'SourceReport',
    'aggregate',
    'aggregate_with_stats',
    'collect_trends',
    'TrendsConfig',
    'is_duplicate',
    'overlap_ratio',
    'Platform',
    'SelectedTopic',
    'TrendCandidate',
    'calculate_relevance_score',
    'InstagramSource',
    'TikTokSource',
    'TrendSource',
    'YouTubeSource',
    'build_trend_sources',
]
