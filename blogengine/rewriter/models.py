"""
Pydantic models for article drafts and their structured sub-items.

Field names are snake_case in Python and camelCase on the wire. Every array
item carries a ``_key`` generated when the item is built, so identical items
still get distinct keys. ``DocumentPatch`` subclasses describe partial
updates: only fields that are set end up in the CMS ``set`` payload.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from blogengine.core.logging import get_logger
from blogengine.core.utils import ensure_portable_text, generate_key, today_iso, validate_url

logger = get_logger(__name__)

REFERENCE_TYPE = "sourceReference"
LEGACY_REFERENCE_TYPE = "reference"


class CamelModel(BaseModel):
    """Base model serialised with the CMS's camelCase field names."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def to_cms(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TakeMood(str, Enum):
    """How strongly the personal take endorses the topic."""
    LOVE = "love"
    RECOMMEND = "recommend"
    MIXED = "mixed"
    CAUTION = "caution"
    SKIP = "skip"


def _required_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("must not be empty")
    return text


class KeyedItem(CamelModel):
    """An array item addressable by a unique key."""
    key: str = Field(default_factory=generate_key, alias="_key")


class KeyTakeaway(KeyedItem):
    type: str = Field(default="takeaway", alias="_type")
    point: str
    icon: str = "✨"

    _check_point = field_validator("point", mode="before")(_required_text)

    @field_validator("icon", mode="before")
    @classmethod
    def default_icon(cls, v):
        return v or "✨"


class ExpertTip(KeyedItem):
    type: str = Field(default="tip", alias="_type")
    title: str
    description: str
    pro_tip: Optional[str] = Field(default=None, alias="proTip")

    _check_text = field_validator("title", "description", mode="before")(_required_text)

    @field_validator("pro_tip", mode="before")
    @classmethod
    def blank_pro_tip(cls, v):
        return v or None


class FAQItem(KeyedItem):
    type: str = Field(default="faqItem", alias="_type")
    question: str
    answer: str

    _check_text = field_validator("question", "answer", mode="before")(_required_text)


class SourceReference(KeyedItem):
    """A citation supporting claims in the article."""
    type: str = Field(default=REFERENCE_TYPE, alias="_type")
    title: str
    publisher: str
    url: str
    note: Optional[str] = None
    supported_sections: List[str] = Field(default_factory=list, alias="supportedSections")
    date_accessed: str = Field(default_factory=today_iso, alias="dateAccessed")

    _check_text = field_validator("title", "publisher", mode="before")(_required_text)

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v):
        url = str(v or "").strip()
        if not validate_url(url):
            raise ValueError(f"not a valid http(s) URL: {v!r}")
        return url

    @field_validator("supported_sections", mode="before")
    @classmethod
    def coerce_sections(cls, v):
        if not v:
            return []
        if isinstance(v, str):
            return [v]
        return [str(s) for s in v if s]


class KyndallsTake(CamelModel):
    """Personal-voice section written as the site's creator."""
    show: bool = Field(default=True, alias="showKyndallsTake")
    headline: str = "Kyndall's Take"
    content: List[Dict[str, Any]] = Field(default_factory=list)
    mood: TakeMood = TakeMood.RECOMMEND

    @field_validator("headline", mode="before")
    @classmethod
    def default_headline(cls, v):
        return v or "Kyndall's Take"

    @field_validator("content", mode="before")
    @classmethod
    def to_portable_text(cls, v):
        return ensure_portable_text(v)

    @field_validator("mood", mode="before")
    @classmethod
    def known_mood(cls, v):
        try:
            return TakeMood(str(v).lower())
        except ValueError:
            return TakeMood.RECOMMEND


class DocumentReference(KeyedItem):
    """A keyed reference to another CMS document."""
    type: str = Field(default="reference", alias="_type")
    ref: str = Field(alias="_ref")


class ImageAssetRef(CamelModel):
    type: str = Field(default="reference", alias="_type")
    ref: str = Field(alias="_ref")


class FeaturedImage(CamelModel):
    type: str = Field(default="image", alias="_type")
    asset: ImageAssetRef
    alt: Optional[str] = None


class ImageCredit(CamelModel):
    name: str
    username: Optional[str] = None
    photographer_url: Optional[str] = Field(default=None, alias="photographerUrl")
    unsplash_url: Optional[str] = Field(default=None, alias="unsplashUrl")
    source: str = "Unsplash"


class TrendProvenance(CamelModel):
    platform: str
    trending_topic: str = Field(alias="trendingTopic")
    trending_score: Optional[float] = Field(default=None, alias="trendingScore")
    detected_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="detectedAt",
    )


class ArticleDraft(CamelModel):
    """
    Complete article document as created in the CMS.

    Drafts are always created hidden (``show_on_site=False``) so a human
    reviews them before publishing.
    """

    title: str
    slug: str
    category: str = "lifestyle"
    excerpt: str = ""
    introduction: List[Dict[str, Any]] = Field(default_factory=list)
    main_content: List[Dict[str, Any]] = Field(default_factory=list, alias="mainContent")

    # GEO
    quick_answer: Optional[str] = Field(default=None, alias="quickAnswer")
    key_takeaways: List[KeyTakeaway] = Field(default_factory=list, alias="keyTakeaways")
    expert_tips: List[ExpertTip] = Field(default_factory=list, alias="expertTips")
    faq_section: List[FAQItem] = Field(default_factory=list, alias="faqSection")
    kyndalls_take: Optional[KyndallsTake] = Field(default=None, alias="kyndallsTake")
    references: List[SourceReference] = Field(default_factory=list)

    # SEO
    seo_title: Optional[str] = Field(default=None, alias="seoTitle")
    seo_description: Optional[str] = Field(default=None, alias="seoDescription")
    keywords: List[str] = Field(default_factory=list)

    # Media and linking
    featured_image: Optional[FeaturedImage] = Field(default=None, alias="featuredImage")
    image_credit: Optional[ImageCredit] = Field(default=None, alias="imageCredit")
    image_attribution: Optional[str] = Field(default=None, alias="imageAttribution")
    related_blog_posts: List[DocumentReference] = Field(default_factory=list, alias="relatedBlogPosts")
    related_articles: List[DocumentReference] = Field(default_factory=list, alias="relatedArticles")

    # Provenance and visibility
    trend_source: Optional[TrendProvenance] = Field(default=None, alias="trendSource")
    show_on_site: bool = Field(default=False, alias="showOnSite")
    auto_generated: bool = Field(default=True, alias="autoGenerated")
    published_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="publishedAt",
    )

    @field_validator("introduction", "main_content", mode="before")
    @classmethod
    def to_portable_text(cls, v):
        return ensure_portable_text(v)

    def to_document(self) -> Dict[str, Any]:
        """CMS document payload for a create mutation."""
        doc = self.to_cms()
        doc["_type"] = "article"
        doc["slug"] = {"_type": "slug", "current": self.slug}
        return doc


class DocumentPatch(CamelModel):
    """Partial update: only fields explicitly set are written."""

    def to_set(self) -> Dict[str, Any]:
        # Unset-ness is judged on top-level fields only; nested items keep their defaults
        if not self.model_fields_set:
            return {}
        return self.model_dump(by_alias=True, include=set(self.model_fields_set), exclude_none=True)

    @property
    def fields(self) -> List[str]:
        return list(self.to_set().keys())

    @property
    def is_empty(self) -> bool:
        return not self.to_set()


class GeoPatch(DocumentPatch):
    quick_answer: Optional[str] = Field(default=None, alias="quickAnswer")
    key_takeaways: Optional[List[KeyTakeaway]] = Field(default=None, alias="keyTakeaways")
    expert_tips: Optional[List[ExpertTip]] = Field(default=None, alias="expertTips")
    faq_section: Optional[List[FAQItem]] = Field(default=None, alias="faqSection")
    kyndalls_take: Optional[KyndallsTake] = Field(default=None, alias="kyndallsTake")


class ReferencesPatch(DocumentPatch):
    references: Optional[List[SourceReference]] = None


M = TypeVar("M", bound=KeyedItem)


def build_keyed_items(model_cls: Type[M], raw_items: Optional[Iterable[Any]]) -> List[M]:
    """
    Validate raw generated items into keyed models.

    Invalid items are dropped and logged; every accepted item gets a
    fresh key.
    """
    items: List[M] = []
    for raw in raw_items or []:
        if not isinstance(raw, dict):
            continue
        data = {k: v for k, v in raw.items() if k not in ("_key", "key")}
        try:
            items.append(model_cls.model_validate(data))
        except ValidationError as e:
            logger.debug(f"Rejected {model_cls.__name__}: {e.errors()[0].get('msg')}")
    return items
