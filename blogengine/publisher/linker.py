"""Internal linking: find existing posts and articles related to a new draft."""

from dataclasses import dataclass, field
from typing import Collection, List, Optional, Sequence

from blogengine.core.errors import PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.trender.config import DEFAULT_PRESERVE_WORDS
from .gateway import PersistenceGateway, RelatedDocument

logger = get_logger(__name__)

MAX_SEARCH_TERMS = 10


@dataclass
class RelatedContent:
    blog_posts: List[RelatedDocument] = field(default_factory=list)
    articles: List[RelatedDocument] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.blog_posts and not self.articles


def extract_keywords(title: str, category: Optional[str], preserve_words: Collection[str] = DEFAULT_PRESERVE_WORDS) -> List[str]:
    """Title words longer than three letters (or allow-listed), then the category."""
    keywords: List[str] = []
    for word in (title or '').lower().split():
        if (len(word) > 3 or word in preserve_words) and word not in keywords:
            keywords.append(word)
    if category and category.lower() not in keywords:
        keywords.append(category.lower())
    return keywords


def _mentions_any(title: str, keywords: Sequence[str]) -> bool:
    lowered = (title or '').lower()
    return any(k in lowered for k in keywords)


class RelatedContentFinder:
    """Looks up related content through the persistence gateway."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        preserve_words: Collection[str] = DEFAULT_PRESERVE_WORDS,
        max_blog_posts: int = 3,
        max_articles: int = 2,
    ):
        self.gateway = gateway
        self.preserve_words = preserve_words
        self.max_blog_posts = max_blog_posts
        self.max_articles = max_articles

    async def find(self, title: str, category: Optional[str]) -> RelatedContent:
        """
        Related blog posts and articles for a draft.

        Lookup errors never propagate; they just leave a list empty.
        """
        category = category or 'lifestyle'
        keywords = extract_keywords(title or '', category, self.preserve_words)

        related = RelatedContent(
            blog_posts=await self._blog_posts(keywords, category),
            articles=await self._articles(keywords, title or ''),
        )
        logger.info(f"Found {len(related.blog_posts)} related posts and {len(related.articles)} related articles")
        return related

    async def _blog_posts(self, keywords: List[str], category: str) -> List[RelatedDocument]:
        try:
            candidates = await self.gateway.search_blog_posts(keywords[:MAX_SEARCH_TERMS], category, limit=5)
        except PersistenceFailure as e:
            logger.warning(f"Related post search failed, falling back to category: {e}")
            try:
                return await self.gateway.blog_posts_in_category(category, limit=self.max_blog_posts)
            except PersistenceFailure as fallback_error:
                logger.warning(f"Category fallback failed: {fallback_error}")
                return []

        relevant = [
            post for post in candidates
            if _mentions_any(post.title, keywords) or post.category == category
        ]
        return relevant[:self.max_blog_posts]

    async def _articles(self, keywords: List[str], title: str) -> List[RelatedDocument]:
        try:
            candidates = await self.gateway.search_articles(keywords[:MAX_SEARCH_TERMS], title, limit=3)
        except PersistenceFailure as e:
            logger.warning(f"Related article search failed: {e}")
            return []

        return [a for a in candidates if _mentions_any(a.title, keywords)][:self.max_articles]
