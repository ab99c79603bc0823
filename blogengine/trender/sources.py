"""Trend sources for TikTok, YouTube and Instagram.

Every source returns ``TrendCandidate`` records tagged with its platform.
A source without credentials reports ``is_configured == False`` and is
skipped by the pipeline rather than treated as a failure.
"""

import random
import re
import time
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from blogengine.core.errors import SourceUnavailable
from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings
from .config import DEFAULT_INSTAGRAM_CURATED, DEFAULT_TIKTOK_CURATED, DEFAULT_TIKTOK_SEASONAL, Trend, TrendsConfig
from .models import Platform, TrendCandidate

logger = get_logger(__name__)

TIKTOK_AUTH_URL = "https://open.tiktokapis.com/v2/oauth/token/"
TIKTOK_API_BASE = "https://open.tiktokapis.com/v2"
YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
YOUTUBE_HOWTO_STYLE_CATEGORY = "26"

TIKTOK_RESEARCH_HASHTAGS = ['makeup', 'skincare', 'beauty', 'grwm']

YOUTUBE_SEARCH_QUERIES = [
    'beauty trends',
    'makeup tutorial viral',
    'skincare routine trending',
    'grwm makeup',
    'drugstore makeup haul',
    'skincare products worth it',
    'makeup hacks tiktok',
    'viral beauty products',
]

YOUTUBE_BEAUTY_TERMS = [
    'makeup', 'skincare', 'beauty', 'cosmetic', 'skin', 'face', 'lips', 'eyes',
    'foundation', 'concealer', 'blush', 'bronzer', 'highlighter', 'mascara',
    'eyeshadow', 'lipstick', 'serum', 'moisturizer', 'spf', 'sunscreen',
    'retinol', 'cleanser', 'toner', 'acne', 'glow', 'contour', 'brow',
    'lash', 'nail', 'hair', 'grwm', 'routine', 'tutorial', 'drugstore',
    'sephora', 'ulta', 'glossier', 'charlotte tilbury', 'rare beauty',
]

YOUTUBE_TITLE_PATTERNS = [
    re.compile(r'best\s+(\w+\s+\w+)', re.I),
    re.compile(r'(\w+)\s+tutorial', re.I),
    re.compile(r'(\w+)\s+routine', re.I),
    re.compile(r'(\w+)\s+for\s+(\w+)', re.I),
    re.compile(r'how\s+to\s+(\w+\s+\w+)', re.I),
    re.compile(r'(\w+)\s+tips', re.I),
    re.compile(r'(\w+)\s+hacks', re.I),
    re.compile(r'viral\s+(\w+)', re.I),
    re.compile(r'(\w+)\s+review', re.I),
]

ACRONYMS = {'grwm', 'spf', 'diy'}

RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def dedupe_by_topic(trends: List[TrendCandidate]) -> List[TrendCandidate]:
    """Keep the first candidate for each lowercased topic."""
    seen = set()
    unique = []
    for trend in trends:
        if not trend.is_valid or trend.identity in seen:
            continue
        seen.add(trend.identity)
        unique.append(trend)
    return unique


def format_topic(topic: str) -> str:
    """Title-case a topic, keeping known acronyms uppercase."""
    words = []
    for word in topic.lower().split():
        words.append(word.upper() if word in ACRONYMS else word[:1].upper() + word[1:])
    return ' '.join(words)


def format_hashtag(hashtag: str) -> str:
    """Turn a hashtag like ``grwmMakeup`` into ``GRWM Makeup``."""
    return format_topic(re.sub(r'([a-z])([A-Z])', r'\1 \2', hashtag))


def extract_topic_from_title(title: str) -> Optional[str]:
    """Reduce a video title to a short topic, or None if nothing usable is left."""
    if not title:
        return None

    cleaned = re.sub(r'\|.*$', '', title)
    cleaned = re.sub(r'\(.*?\)', '', cleaned)
    cleaned = re.sub(r'\[.*?\]', '', cleaned)
    cleaned = re.sub(r'[-–—].*$', '', cleaned)
    cleaned = re.sub(r'\d{4}', '', cleaned)
    cleaned = re.sub(r'[!?]+', '', cleaned)
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()

    if len(cleaned) > 60:
        for pattern in (
            r'^(.*?)\s+tutorial',
            r'^(.*?)\s+routine',
            r'^(.*?)\s+review',
            r'^how\s+to\s+(.*?)(?:\s+in|$)',
            r'^(.*?)\s+tips',
            r'^my\s+(.*?)\s+routine',
        ):
            match = re.search(pattern, cleaned, re.I)
            if match and match.group(1):
                cleaned = match.group(1).strip()
                break

    cleaned = re.sub(r'^(my|the|a|an)\s+', '', cleaned, flags=re.I).strip()

    if len(cleaned) < 5 or len(cleaned) > 80:
        return None
    return format_topic(cleaned)


def is_beauty_related(title: str) -> bool:
    title_lower = title.lower()
    return any(term in title_lower for term in YOUTUBE_BEAUTY_TERMS)


def extract_trends_from_titles(trends: List[TrendCandidate]) -> List[TrendCandidate]:
    """Mine phrases repeated across several video titles."""
    counts: Counter = Counter()
    for trend in trends:
        title = (trend.title or trend.topic).lower()
        for pattern in YOUTUBE_TITLE_PATTERNS:
            for match in pattern.finditer(title):
                extracted = match.group(1) or match.group(0)
                if extracted and len(extracted) > 3:
                    counts[extracted] += 1

    return [
        TrendCandidate(
            topic=format_topic(phrase),
            platform=Platform.YOUTUBE,
            trending_score=count * 20,
            source='youtube_extracted',
        )
        for phrase, count in counts.most_common()
        if count >= 2
    ][:10]


class TrendSource(ABC):
    """A platform reporting trending topics."""

    platform: Platform

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self._client = client
        self.timeout = timeout

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credentials this source needs are present."""

    @abstractmethod
    async def fetch(self) -> List[TrendCandidate]:
        """Fetch current trends. May raise SourceUnavailable."""

    @property
    def name(self) -> str:
        return self.platform.value

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4.0),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )
    async def _request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        response = await self._http().request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()


class TikTokSource(TrendSource):
    """TikTok Research API hashtags plus curated and seasonal beauty formats."""

    platform = Platform.TIKTOK

    def __init__(
        self,
        client_key: Optional[str],
        client_secret: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        curated_count: int = 10,
        curated_formats: Optional[Sequence[Trend]] = None,
        seasonal_themes: Optional[Dict[int, Sequence[Trend]]] = None,
    ):
        super().__init__(client)
        self.client_key = client_key
        self.client_secret = client_secret
        self.rng = rng or random.Random()
        self.curated_count = curated_count
        self.curated_formats = list(DEFAULT_TIKTOK_CURATED if curated_formats is None else curated_formats)
        self.seasonal_themes = DEFAULT_TIKTOK_SEASONAL if seasonal_themes is None else seasonal_themes
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    @property
    def is_configured(self) -> bool:
        return bool(self.client_key and self.client_secret)

    async def fetch(self) -> List[TrendCandidate]:
        if not self.is_configured:
            raise SourceUnavailable(self.name, "missing TIKTOK_CLIENT_KEY or TIKTOK_CLIENT_SECRET")

        trends: List[TrendCandidate] = []

        try:
            trends.extend(await self._fetch_research_trends())
        except (httpx.HTTPError, SourceUnavailable, ValueError) as e:
            logger.info(f"TikTok Research API not available: {e}")

        trends.extend(self.curated_trends())
        trends.extend(self.seasonal_trends())
        return dedupe_by_topic(trends)

    async def _get_access_token(self) -> str:
        """Client-credentials token, cached until five minutes before expiry."""
        if self._access_token and time.time() < self._token_expiry:
            return self._access_token

        logger.debug("Requesting TikTok access token")
        data = await self._request_json(
            "POST",
            TIKTOK_AUTH_URL,
            data={
                "client_key": self.client_key,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if data.get("error"):
            raise SourceUnavailable(self.name, f"auth error: {data.get('error_description') or data['error']}")

        self._access_token = data["access_token"]
        self._token_expiry = time.time() + max(0, int(data.get("expires_in", 0)) - 300)
        return self._access_token

    async def _fetch_research_trends(self) -> List[TrendCandidate]:
        token = await self._get_access_token()
        today = datetime.now(timezone.utc).date()
        data = await self._request_json(
            "POST",
            f"{TIKTOK_API_BASE}/research/video/query/",
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            json={
                "query": {
                    "and": [
                        {"field_name": "hashtag_name", "operation": "IN", "field_values": TIKTOK_RESEARCH_HASHTAGS}
                    ]
                },
                "max_count": 20,
                "start_date": (today - timedelta(days=7)).strftime("%Y%m%d"),
                "end_date": today.strftime("%Y%m%d"),
            },
        )

        counts: Counter = Counter()
        for video in (data.get("data") or data).get("videos") or []:
            for tag in video.get("hashtag_names") or []:
                counts[tag.lower()] += 1

        return [
            TrendCandidate(
                topic=format_hashtag(tag),
                platform=self.platform,
                tags=[tag],
                trending_score=count,
                source="tiktok_research",
            )
            for tag, count in counts.most_common(15)
        ]

    def curated_trends(self) -> List[TrendCandidate]:
        """A shuffled subset of evergreen formats with descending scores."""
        formats = list(self.curated_formats)
        self.rng.shuffle(formats)
        return [
            TrendCandidate(
                topic=topic,
                platform=self.platform,
                tags=list(tags),
                trending_score=100 - index * 5,
                source="tiktok_curated",
            )
            for index, (topic, tags) in enumerate(formats[:self.curated_count])
        ]

    def seasonal_trends(self, month: Optional[int] = None) -> List[TrendCandidate]:
        month = month or datetime.now(timezone.utc).month
        return [
            TrendCandidate(
                topic=topic,
                platform=self.platform,
                tags=list(tags),
                trending_score=90 - index * 5,
                source="tiktok_seasonal",
            )
            for index, (topic, tags) in enumerate(self.seasonal_themes.get(month, []))
        ]


class YouTubeSource(TrendSource):
    """Search and most-popular charts in the Howto & Style category."""

    platform = Platform.YOUTUBE

    def __init__(
        self,
        api_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        max_queries: int = 3,
        max_trends: int = 20,
    ):
        super().__init__(client)
        self.api_key = api_key
        self.max_queries = max_queries
        self.max_trends = max_trends

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self) -> List[TrendCandidate]:
        if not self.is_configured:
            raise SourceUnavailable(self.name, "missing YOUTUBE_API_KEY")

        trends = await self._search_trending_videos()
        trends.extend(await self._popular_in_category())
        trends.extend(extract_trends_from_titles(trends))
        return dedupe_by_topic(trends)[:self.max_trends]

    async def _search_trending_videos(self) -> List[TrendCandidate]:
        published_after = (datetime.now(timezone.utc) - timedelta(days=14)).strftime('%Y-%m-%dT%H:%M:%SZ')
        trends: List[TrendCandidate] = []

        for query in YOUTUBE_SEARCH_QUERIES[:self.max_queries]:
            try:
                data = await self._request_json(
                    "GET",
                    f"{YOUTUBE_API_BASE}/search",
                    params={
                        "key": self.api_key,
                        "part": "snippet",
                        "q": query,
                        "type": "video",
                        "order": "viewCount",
                        "publishedAfter": published_after,
                        "maxResults": "10",
                        "relevanceLanguage": "en",
                        "videoCategoryId": YOUTUBE_HOWTO_STYLE_CATEGORY,
                    },
                )
            except httpx.HTTPError as e:
                logger.warning(f"YouTube search failed for '{query}': {e}")
                continue

            for item in data.get("items") or []:
                snippet = item.get("snippet") or {}
                title = snippet.get("title") or ""
                topic = extract_topic_from_title(title)
                if not topic:
                    continue
                trends.append(TrendCandidate(
                    topic=topic,
                    platform=self.platform,
                    title=title,
                    description=snippet.get("description") or "",
                    trending_score=80,
                    source="youtube_search",
                    metadata={
                        "video_id": (item.get("id") or {}).get("videoId"),
                        "channel": snippet.get("channelTitle"),
                    },
                ))

        return trends

    async def _popular_in_category(self) -> List[TrendCandidate]:
        try:
            data = await self._request_json(
                "GET",
                f"{YOUTUBE_API_BASE}/videos",
                params={
                    "key": self.api_key,
                    "part": "snippet,statistics",
                    "chart": "mostPopular",
                    "regionCode": "US",
                    "videoCategoryId": YOUTUBE_HOWTO_STYLE_CATEGORY,
                    "maxResults": "20",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"YouTube category fetch failed: {e}")
            return []

        trends = []
        for item in data.get("items") or []:
            title = (item.get("snippet") or {}).get("title") or ""
            if not is_beauty_related(title):
                continue
            topic = extract_topic_from_title(title)
            if not topic:
                continue
            view_count = int((item.get("statistics") or {}).get("viewCount") or 0)
            trends.append(TrendCandidate(
                topic=topic,
                platform=self.platform,
                title=title,
                trending_score=min(100, view_count // 100000),
                source="youtube_trending",
                metadata={"video_id": item.get("id"), "view_count": view_count},
            ))
        return trends


class InstagramSource(TrendSource):
    """Curated Instagram formats until Graph API hashtag access is granted."""

    platform = Platform.INSTAGRAM

    def __init__(
        self,
        access_token: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        count: int = 5,
        curated: Optional[Sequence[Trend]] = None,
    ):
        super().__init__(client)
        self.access_token = access_token
        self.rng = rng or random.Random()
        self.count = count
        self.curated = list(DEFAULT_INSTAGRAM_CURATED if curated is None else curated)

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    async def fetch(self) -> List[TrendCandidate]:
        if not self.is_configured:
            raise SourceUnavailable(self.name, "missing INSTAGRAM_ACCESS_TOKEN")

        trends = list(self.curated)
        self.rng.shuffle(trends)
        return [
            TrendCandidate(
                topic=topic,
                platform=self.platform,
                tags=list(tags),
                trending_score=70 - index * 5,
                source="instagram_curated",
            )
            for index, (topic, tags) in enumerate(trends[:self.count])
        ]


def build_trend_sources(settings: Settings, trends_config: Optional[TrendsConfig] = None) -> List[TrendSource]:
    """All known sources, configured or not, in priority order."""
    trends_config = trends_config or TrendsConfig()
    return [
        TikTokSource(
            settings.tiktok_client_key,
            settings.tiktok_client_secret,
            curated_formats=trends_config.tiktok_curated,
            seasonal_themes=trends_config.tiktok_seasonal,
        ),
        YouTubeSource(settings.youtube_api_key),
        InstagramSource(settings.instagram_access_token, curated=trends_config.instagram_curated),
    ]
