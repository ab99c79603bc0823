"""Wiring of the pipeline collaborators from settings."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings
from blogengine.mediaer.unsplash import UnsplashImageSearch
from blogengine.migrator.engine import MigrationResult
from blogengine.migrator.geo import BlogPostGeoSweep, GeoSweep
from blogengine.migrator.references import ReferencesSweep
from blogengine.migrator.schema import migrate_reference_types
from blogengine.pipeline.assembler import DraftAssembler
from blogengine.pipeline.generation import GenerationPipeline, GenerationResult
from blogengine.pipeline.runner import JobRunner
from blogengine.publisher.gateway import PersistenceGateway
from blogengine.publisher.linker import RelatedContentFinder
from blogengine.publisher.sanity import SanityGateway
from blogengine.rewriter.generator import ContentGenerator
from blogengine.rewriter.llm_provider import LLMProviderFactory
from blogengine.trender.config import TrendsConfig
from blogengine.trender.sources import TrendSource, build_trend_sources

logger = get_logger(__name__)


@dataclass
class Services:
    """Everything the HTTP surface and the CLI need, built once per process."""
    settings: Settings
    runner: JobRunner
    generator: ContentGenerator
    gateway: Optional[PersistenceGateway] = None
    sources: List[TrendSource] = field(default_factory=list)
    image_search: Optional[UnsplashImageSearch] = None
    trends_config: TrendsConfig = field(default_factory=TrendsConfig)
    geo_sweep: Optional[GeoSweep] = None
    blog_post_geo_sweep: Optional[BlogPostGeoSweep] = None
    references_sweep: Optional[ReferencesSweep] = None
    pipeline: Optional[GenerationPipeline] = None

    @property
    def cms_ready(self) -> bool:
        return self.gateway is not None

    async def run_generation(self) -> GenerationResult:
        return await self.pipeline.run()

    async def run_geo(self, limit: Optional[int] = None, dry_run: bool = False) -> MigrationResult:
        return await self.geo_sweep.run(limit=limit, dry_run=dry_run)

    async def run_blog_post_geo(self, limit: Optional[int] = None, dry_run: bool = False) -> MigrationResult:
        return await self.blog_post_geo_sweep.run(limit=limit, dry_run=dry_run)

    async def run_references(self, limit: Optional[int] = None, dry_run: bool = False) -> MigrationResult:
        return await self.references_sweep.run(limit=limit, dry_run=dry_run)

    async def run_reference_types(self, dry_run: bool = False) -> MigrationResult:
        return await migrate_reference_types(self.gateway, dry_run=dry_run)

    async def run_startup_sweeps(self) -> Dict[str, Any]:
        """GEO then references backfill, as run after startup."""
        geo = await self.run_geo()
        references = await self.run_references()
        return {
            'success': geo.success and references.success,
            'migrations': {geo.kind: geo.to_dict(), references.kind: references.to_dict()},
        }

    async def aclose(self) -> None:
        for source in self.sources:
            await source.aclose()
        if self.image_search is not None:
            await self.image_search.aclose()
        if self.gateway is not None:
            await self.gateway.aclose()


def wire_services(
    settings: Settings,
    gateway: Optional[PersistenceGateway],
    generator: ContentGenerator,
    sources: List[TrendSource],
    image_search: Optional[UnsplashImageSearch] = None,
    trends_config: Optional[TrendsConfig] = None,
    runner: Optional[JobRunner] = None,
) -> Services:
    """Assemble Services around an already built gateway and generator."""
    trends_config = trends_config or TrendsConfig()
    services = Services(
        settings=settings,
        runner=runner or JobRunner(),
        generator=generator,
        gateway=gateway,
        sources=sources,
        image_search=image_search,
        trends_config=trends_config,
    )
    if gateway is None:
        return services

    services.geo_sweep = GeoSweep.from_settings(settings, gateway, generator)
    services.blog_post_geo_sweep = BlogPostGeoSweep.from_settings(settings, gateway, generator)
    services.references_sweep = ReferencesSweep.from_settings(settings, gateway, generator)
    assembler = DraftAssembler(
        generator,
        gateway,
        image_search=image_search,
        linker=RelatedContentFinder(gateway, preserve_words=trends_config.preserve_words),
    )
    services.pipeline = GenerationPipeline.from_settings(
        settings,
        gateway,
        sources,
        assembler,
        trends_config,
        followups=[services.geo_sweep, services.references_sweep],
    )
    return services


def build_services(settings: Settings) -> Services:
    """Build production collaborators from settings."""
    gateway = SanityGateway.from_settings(settings) if settings.sanity_configured else None
    if gateway is None:
        logger.warning("Sanity is not configured (SANITY_PROJECT_ID / SANITY_TOKEN); CMS jobs disabled")

    trends_config = TrendsConfig.load_from_yaml(settings.trends_config_path)
    return wire_services(
        settings,
        gateway=gateway,
        generator=ContentGenerator(LLMProviderFactory.create_provider(settings)),
        sources=build_trend_sources(settings, trends_config),
        image_search=UnsplashImageSearch(settings.unsplash_access_key, utm_source=settings.unsplash_utm_source),
        trends_config=trends_config,
    )
