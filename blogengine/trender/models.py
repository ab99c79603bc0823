"""Trend records passed between the sources, the aggregator and the pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from blogengine.core.utils import clean_text


class Platform(str, Enum):
    """Social platforms a trend can originate from."""
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"


@dataclass
class TrendCandidate:
    """A trending topic reported by one source. Lives for one aggregation run."""
    topic: str
    platform: Optional[Platform] = None
    tags: List[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    trending_score: float = 1.0
    relevance_score: float = 0.0
    source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.topic = clean_text(self.topic or self.title or "")
        self.tags = [clean_text(str(tag)) for tag in (self.tags or []) if tag]
        # Sources that report no magnitude count as 1
        if not self.trending_score or self.trending_score < 0:
            self.trending_score = 1.0

    @property
    def is_valid(self) -> bool:
        return bool(self.topic)

    @property
    def identity(self) -> str:
        """Key used to collapse the same topic reported by several sources."""
        return self.topic.lower()

    @property
    def ranking_score(self) -> float:
        return self.relevance_score * self.trending_score


@dataclass
class SelectedTopic:
    """A trend chosen for article generation in the current run."""
    topic: str
    platform: Platform
    tags: List[str]
    trending_score: float
    relevance_score: float
    rank: int
    source: str = ""

    @classmethod
    def from_candidate(cls, candidate: TrendCandidate, rank: int) -> "SelectedTopic":
        return cls(
            topic=candidate.topic,
            platform=candidate.platform,
            tags=list(candidate.tags),
            trending_score=candidate.trending_score,
            relevance_score=candidate.relevance_score,
            rank=rank,
            source=candidate.source,
        )

    @property
    def ranking_score(self) -> float:
        return self.relevance_score * self.trending_score

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'topic': self.topic,
            'platform': self.platform.value if self.platform else None,
            'tags': self.tags,
            'trending_score': self.trending_score,
            'relevance_score': self.relevance_score,
            'rank': self.rank,
            'source': self.source,
        }
