"""GEO backfill: quick answer, takeaways, tips, FAQs and the personal take."""

from typing import Any, Dict, Mapping, Optional

from blogengine.core.settings import Settings
from blogengine.publisher.gateway import BLOG_POST_GEO_FIELDS, GEO_FIELDS, PersistenceGateway
from blogengine.rewriter.generator import ContentGenerator
from blogengine.rewriter.models import GeoPatch
from .engine import EnrichmentSweep, Sleeper, blog_post_summary, product_names


class GeoSweep(EnrichmentSweep):
    """Fills articles missing a quick answer, takeaways or FAQs."""

    field_set = GEO_FIELDS

    @classmethod
    def from_settings(cls, settings: Settings, gateway: PersistenceGateway, generator: ContentGenerator,
                      sleep: Optional[Sleeper] = None) -> "GeoSweep":
        return cls(
            gateway,
            generator,
            max_records=settings.migration_max_records,
            delay_seconds=settings.geo_delay_seconds,
            summary_chars=settings.geo_summary_chars,
            sleep=sleep,
        )

    async def build_patch(self, record: Dict[str, Any], summary: str) -> Optional[GeoPatch]:
        geo = await self.generator.generate_geo(
            title=record.get('title') or '',
            summary=summary,
            category=record.get('category'),
            excerpt=record.get('excerpt'),
        )
        return geo.to_patch()


class BlogPostGeoSweep(GeoSweep):
    """Same GEO sections for blog posts, written from their HTML or rich-text body and featured products."""

    field_set = BLOG_POST_GEO_FIELDS

    @classmethod
    def from_settings(cls, settings: Settings, gateway: PersistenceGateway, generator: ContentGenerator,
                      sleep: Optional[Sleeper] = None) -> "BlogPostGeoSweep":
        return cls(
            gateway,
            generator,
            max_records=settings.migration_max_records,
            delay_seconds=settings.geo_delay_seconds,
            summary_chars=settings.blog_post_summary_chars,
            sleep=sleep,
        )

    def summarize(self, record: Mapping[str, Any]) -> str:
        return blog_post_summary(record, self.summary_chars)

    async def build_patch(self, record: Dict[str, Any], summary: str) -> Optional[GeoPatch]:
        geo = await self.generator.generate_geo(
            title=record.get('title') or '',
            summary=summary,
            category=record.get('category'),
            excerpt=record.get('excerpt'),
            products=product_names(record),
        )
        return geo.to_patch()
