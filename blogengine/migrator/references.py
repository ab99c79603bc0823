"""References backfill: cited sources for articles that have none."""

from typing import Any, Dict, List, Optional

from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings
from blogengine.publisher.gateway import REFERENCE_FIELDS, PersistenceGateway
from blogengine.rewriter.generator import ContentGenerator
from blogengine.rewriter.models import ReferencesPatch, SourceReference, build_keyed_items
from .engine import EnrichmentSweep, Sleeper

logger = get_logger(__name__)


def validate_references(raw: List[Dict[str, Any]]) -> List[SourceReference]:
    """Keep references with a title, a publisher and an http(s) URL."""
    accepted = build_keyed_items(SourceReference, raw)
    rejected = len(raw) - len(accepted)
    if rejected:
        logger.info(f"Dropped {rejected} invalid reference(s)")
    return accepted


class ReferencesSweep(EnrichmentSweep):
    """Adds validated source references to articles without any."""

    field_set = REFERENCE_FIELDS

    @classmethod
    def from_settings(cls, settings: Settings, gateway: PersistenceGateway, generator: ContentGenerator,
                      sleep: Optional[Sleeper] = None) -> "ReferencesSweep":
        return cls(
            gateway,
            generator,
            max_records=settings.migration_max_records,
            delay_seconds=settings.references_delay_seconds,
            summary_chars=settings.references_summary_chars,
            sleep=sleep,
        )

    async def build_patch(self, record: Dict[str, Any], summary: str) -> Optional[ReferencesPatch]:
        raw = await self.generator.generate_references(
            title=record.get('title') or '',
            summary=summary,
            quick_answer=record.get('quickAnswer'),
        )
        references = validate_references(raw)
        if not references:
            return None
        return ReferencesPatch(references=references)
