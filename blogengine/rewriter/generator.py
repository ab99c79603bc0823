"""
Content generation on top of an LLM provider.

``ContentGenerator.generate`` drafts a full article for a selected topic: one
call for the article body (which must parse, or the topic fails) and
auxiliary calls for FAQs, takeaways, tips and the personal take (which may
each come back empty). ``generate_geo`` and ``generate_references`` serve the
backfill sweeps and return empty results on unparseable output.

Generated items are returned as plain dicts; keyed models are built when the
draft or patch is assembled.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from blogengine.core.errors import GenerationFailure
from blogengine.core.logging import get_logger
from blogengine.core.utils import clean_text, slugify
from blogengine.trender.models import SelectedTopic
from . import prompts
from .llm_provider import LLMProvider
from .models import ExpertTip, FAQItem, GeoPatch, KeyTakeaway, KyndallsTake, build_keyed_items
from .parsing import ParseError, ParseResult, parse_llm_json

logger = get_logger(__name__)

CATEGORY_HINTS = {
    'skincare': ('skin', 'serum', 'retinol', 'spf', 'sunscreen', 'moistur', 'cleanser', 'acne', 'toner', 'glass skin'),
    'makeup': ('makeup', 'foundation', 'concealer', 'blush', 'lip', 'mascara', 'eyeshadow', 'contour', 'brow', 'lash'),
    'nails': ('nail', 'manicure', 'pedicure', 'gel'),
    'hair': ('hair', 'curl', 'braid', 'blowout', 'scalp'),
    'fashion': ('fashion', 'outfit', 'style', 'wardrobe', 'wear'),
    'lifestyle': ('wellness', 'self-care', 'routine', 'morning', 'night', 'lifestyle'),
}


def infer_category(topic: str, tags: Sequence[str] = (), suggested: Optional[str] = None) -> str:
    """Pick a site category, trusting the model's suggestion when it is a known one."""
    if isinstance(suggested, str) and suggested.lower() in prompts.CATEGORIES:
        return suggested.lower()

    text = ' '.join([topic, *tags]).lower()
    for category, hints in CATEGORY_HINTS.items():
        if any(hint in text for hint in hints):
            return category
    return 'trending'


@dataclass
class GeoContent:
    """Unkeyed GEO sections as produced by the model."""
    quick_answer: Optional[str] = None
    key_takeaways: List[Dict[str, Any]] = field(default_factory=list)
    expert_tips: List[Dict[str, Any]] = field(default_factory=list)
    faq_section: List[Dict[str, Any]] = field(default_factory=list)
    kyndalls_take: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoContent":
        take = data.get('kyndallsTake')
        return cls(
            quick_answer=_text(data.get('quickAnswer')) or None,
            key_takeaways=_dict_items(data.get('keyTakeaways')),
            expert_tips=_dict_items(data.get('expertTips')),
            faq_section=_dict_items(data.get('faqSection')),
            kyndalls_take=take if isinstance(take, dict) and take.get('content') else None,
        )

    def to_patch(self) -> GeoPatch:
        """Build a patch holding only the sections that validated, each item freshly keyed."""
        fields: Dict[str, Any] = {}
        if self.quick_answer:
            fields['quick_answer'] = self.quick_answer

        takeaways = build_keyed_items(KeyTakeaway, self.key_takeaways)
        if takeaways:
            fields['key_takeaways'] = takeaways
        tips = build_keyed_items(ExpertTip, self.expert_tips)
        if tips:
            fields['expert_tips'] = tips
        faqs = build_keyed_items(FAQItem, self.faq_section)
        if faqs:
            fields['faq_section'] = faqs

        if self.kyndalls_take:
            try:
                take = KyndallsTake.model_validate(self.kyndalls_take)
            except ValidationError as e:
                logger.debug(f"Rejected personal take: {e.errors()[0].get('msg')}")
                take = None
            if take is not None and take.content:
                fields['kyndalls_take'] = take

        return GeoPatch(**fields)


@dataclass
class GeneratedArticle:
    """Article fields returned by the generator for one topic."""
    title: str
    slug: str
    category: str
    excerpt: str
    introduction: str
    content: str
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    geo: GeoContent = field(default_factory=GeoContent)


def _text(value: Any) -> str:
    # Model output is untyped; anything but a string counts as absent
    return clean_text(value) if isinstance(value, str) else ''


def _dict_items(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ContentGenerator:
    """Turns topics and existing article summaries into structured content."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def _complete_json(self, prompt: str, expect: str = 'object', max_tokens: Optional[int] = None) -> ParseResult:
        text = await self.provider.complete(prompt, max_tokens=max_tokens)
        return parse_llm_json(text, expect=expect)

    async def _optional_json(self, label: str, prompt: str, expect: str, max_tokens: int) -> Any:
        """Auxiliary call: any failure yields None instead of failing the article."""
        try:
            result = await self._complete_json(prompt, expect=expect, max_tokens=max_tokens)
        except GenerationFailure as e:
            logger.warning(f"{label} generation failed: {e}")
            return None

        if isinstance(result, ParseError):
            logger.warning(f"{label} output unparseable ({result.reason})")
            return None
        return result.data

    async def generate(self, topic: SelectedTopic, context: Optional[Dict[str, Any]] = None) -> GeneratedArticle:
        """
        Draft an article for one selected topic.

        Args:
            topic: Topic chosen by the aggregator
            context: Optional extra hints (``category``)

        Returns:
            GeneratedArticle with body, SEO and GEO seed fields

        Raises:
            GenerationFailure: If the main article call fails or is unparseable
        """
        context = context or {}
        platform = topic.platform.value if topic.platform else 'social media'
        logger.info(f"Generating article for '{topic.topic}'")

        result = await self._complete_json(prompts.article_prompt(topic.topic, platform, topic.tags))
        if isinstance(result, ParseError):
            raise GenerationFailure(f"Unparseable article output ({result.reason})", raw_text=result.raw_text)

        data = result.data
        title = _text(data.get('title'))
        if not title or not data.get('content'):
            raise GenerationFailure("Article output missing title or content", raw_text=result.raw_text)

        excerpt = _text(data.get('excerpt'))
        category = infer_category(topic.topic, topic.tags, context.get('category') or data.get('category'))

        faqs = await self._optional_json('FAQ', prompts.faq_prompt(topic.topic, excerpt), 'array', 2000)
        takeaways = await self._optional_json('Takeaway', prompts.takeaway_prompt(topic.topic, excerpt), 'array', 1000)
        tips = await self._optional_json('Tips', prompts.tips_prompt(topic.topic), 'array', 1500)
        take = await self._optional_json('Personal take', prompts.kyndalls_take_prompt(topic.topic, platform), 'object', 1000)

        geo = GeoContent.from_dict({
            'quickAnswer': data.get('quickAnswer'),
            'keyTakeaways': takeaways,
            'expertTips': tips,
            'faqSection': faqs,
            'kyndallsTake': take,
        })

        keywords = data.get('keywords') if isinstance(data.get('keywords'), list) else []

        return GeneratedArticle(
            title=title,
            slug=slugify(title),
            category=category,
            excerpt=excerpt,
            introduction=str(data.get('introduction') or ''),
            content=str(data['content']),
            seo_title=_text(data.get('seoTitle')) or None,
            seo_description=_text(data.get('seoDescription')) or None,
            keywords=[clean_text(str(k)) for k in keywords if k],
            geo=geo,
        )

    async def generate_geo(self, title: str, summary: str, category: Optional[str] = None,
                           excerpt: Optional[str] = None, products: Sequence[str] = ()) -> GeoContent:
        """GEO sections for an existing article; empty when the reply is unparseable."""
        result = await self._complete_json(prompts.geo_prompt(title, category, excerpt, summary, products))
        if isinstance(result, ParseError):
            logger.warning(f"GEO output for '{title}' unparseable ({result.reason})")
            return GeoContent()
        return GeoContent.from_dict(result.data)

    async def generate_references(self, title: str, summary: str,
                                  quick_answer: Optional[str] = None) -> List[Dict[str, Any]]:
        """Candidate references (unvalidated); empty when the reply is unparseable."""
        result = await self._complete_json(prompts.references_prompt(title, quick_answer, summary), max_tokens=2000)
        if isinstance(result, ParseError):
            logger.warning(f"References output for '{title}' unparseable ({result.reason})")
            return []
        return _dict_items(result.data.get('references'))
