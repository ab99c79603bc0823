"""Stock photo lookup through the Unsplash search API."""

import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from blogengine.core.logging import get_logger

logger = get_logger(__name__)

UNSPLASH_API_BASE = "https://api.unsplash.com"

CATEGORY_SEARCH_TERMS = {
    'makeup': ['makeup tutorial', 'cosmetics flatlay', 'beauty products', 'lipstick aesthetic'],
    'skincare': ['skincare routine', 'skincare products', 'face serum', 'glowing skin'],
    'nails': ['nail art', 'manicure', 'nail polish'],
    'hair': ['hairstyle', 'hair care', 'beautiful hair'],
    'fashion': ['fashion aesthetic', 'outfit flatlay', 'style'],
    'lifestyle': ['self care', 'wellness aesthetic', 'lifestyle flatlay'],
    'trending': ['beauty trends', 'viral beauty', 'aesthetic flatlay'],
}

RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


@dataclass
class ImageResult:
    """A chosen photo plus the attribution Unsplash requires."""
    url: str
    alt: str
    photographer_name: str
    photographer_username: Optional[str] = None
    photographer_url: Optional[str] = None
    unsplash_url: Optional[str] = None
    unsplash_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    download_location: Optional[str] = None
    attribution_html: str = ""
    attribution_text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def credit(self) -> Dict[str, Optional[str]]:
        return {
            'name': self.photographer_name,
            'username': self.photographer_username,
            'photographerUrl': self.photographer_url,
            'unsplashUrl': self.unsplash_url,
            'source': 'Unsplash',
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'alt': self.alt,
            'credit': self.credit,
            'attribution_html': self.attribution_html,
            'attribution_text': self.attribution_text,
        }


def topic_search_words(topic: str, limit: int = 3) -> str:
    """Up to ``limit`` alphabetic topic words longer than three characters."""
    letters_only = re.sub(r'[^a-z\s]', '', (topic or '').lower())
    words = [w for w in letters_only.split() if len(w) > 3]
    return ' '.join(words[:limit])


class UnsplashImageSearch:
    """
    Find a landscape photo for an article.

    The query mixes the topic's significant words with a random term for the
    category. One of the top three results is picked at random for variety;
    when the combined query finds nothing, the category term alone is tried.
    """

    def __init__(
        self,
        access_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        utm_source: str = "kyndall_ames_blog",
        per_page: int = 5,
    ):
        self.access_key = access_key
        self._client = client
        self.rng = rng or random.Random()
        self.utm_params = f"?utm_source={utm_source}&utm_medium=referral"
        self.per_page = per_page

    @property
    def is_configured(self) -> bool:
        return bool(self.access_key)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(15.0))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def _headers(self) -> Dict[str, str]:
        return {'Authorization': f'Client-ID {self.access_key}', 'Accept-Version': 'v1'}

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2.0),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )
    async def _search_photos(self, query: str) -> list:
        response = await self._http().get(
            f"{UNSPLASH_API_BASE}/search/photos",
            params={'query': query, 'per_page': self.per_page, 'orientation': 'landscape'},
            headers=self._headers,
        )
        response.raise_for_status()
        return response.json().get('results') or []

    def _to_result(self, photo: Dict[str, Any], fallback_alt: str) -> ImageResult:
        user = photo.get('user') or {}
        name = user.get('name') or 'Unknown'
        profile = (user.get('links') or {}).get('html') or 'https://unsplash.com'
        photographer_url = f"{profile}{self.utm_params}"
        unsplash_url = f"https://unsplash.com{self.utm_params}"
        urls = photo.get('urls') or {}

        return ImageResult(
            url=urls.get('regular') or urls.get('full') or '',
            thumbnail_url=urls.get('small'),
            alt=photo.get('alt_description') or fallback_alt,
            photographer_name=name,
            photographer_username=user.get('username'),
            photographer_url=photographer_url,
            unsplash_url=unsplash_url,
            unsplash_id=photo.get('id'),
            download_location=(photo.get('links') or {}).get('download_location'),
            attribution_html=(
                f'Photo by <a href="{photographer_url}" target="_blank" rel="noopener noreferrer">{name}</a> '
                f'on <a href="{unsplash_url}" target="_blank" rel="noopener noreferrer">Unsplash</a>'
            ),
            attribution_text=f"Photo by {name} on Unsplash",
        )

    async def search(self, topic: str, category: str = 'lifestyle') -> Optional[ImageResult]:
        """
        Search for a photo matching the topic.

        Args:
            topic: Article topic
            category: Site category used to pick extra search terms

        Returns:
            ImageResult, or None when unconfigured, on API errors, or with no results
        """
        if not self.is_configured:
            logger.info("No Unsplash access key, skipping image search")
            return None

        terms = CATEGORY_SEARCH_TERMS.get(category) or CATEGORY_SEARCH_TERMS['lifestyle']
        category_term = self.rng.choice(terms)
        query = f"{topic_search_words(topic)} {category_term}".strip()
        logger.info(f"Searching Unsplash for '{query}'")

        try:
            results = await self._search_photos(query)
            if results:
                photo = results[self.rng.randrange(min(3, len(results)))]
                return self._to_result(photo, f"{topic} - beauty tips")

            logger.info(f"No Unsplash results for '{query}', trying '{category_term}'")
            results = await self._search_photos(category_term)
            if results:
                return self._to_result(results[0], "Beauty and skincare tips")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Unsplash search failed: {e}")
            return None

        logger.info("No Unsplash image found")
        return None

    async def track_download(self, download_location: Optional[str]) -> None:
        """Report a download to Unsplash, as its API guidelines require. Best effort."""
        if not self.is_configured or not download_location:
            return
        try:
            response = await self._http().get(download_location, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"Unsplash download tracking failed: {e}")
