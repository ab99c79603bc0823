"""
Enrichment sweep engine.

A sweep backfills one ``FieldSet`` across the persisted corpus:

1. Fetch: ask the gateway for at most ``max_records`` records missing the set
2. Generate: summarise each record's body (bounded) and ask the generator
3. Validate: drop invalid items; an empty result means "skip", not "error"
4. Patch: write only the target fields back
5. Throttle: fixed delay between records

Records are handled strictly one after another. A failure on one record,
expected or not, is counted and the sweep moves on. Because the fetch
predicate only matches records still missing the set, re-running a finished
sweep is a no-op.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from blogengine.core.errors import GenerationFailure, PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.core.utils import portable_text_to_plain, strip_html, truncate
from blogengine.publisher.gateway import FieldSet, PersistenceGateway
from blogengine.rewriter.generator import ContentGenerator
from blogengine.rewriter.models import DocumentPatch

logger = get_logger(__name__)

MAX_LISTED_ARTICLES = 20

Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class MigrationResult:
    """Outcome of one sweep."""
    kind: str
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    dry_run: bool = False
    error: Optional[str] = None
    articles: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def add_article(self, record: Mapping[str, Any], fields_added: List[str]) -> None:
        if len(self.articles) < MAX_LISTED_ARTICLES:
            self.articles.append({
                'title': record.get('title'),
                'slug': _slug_of(record),
                'fieldsAdded': fields_added,
            })

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'kind': self.kind,
            'success': self.success,
            'processed': self.processed,
            'updated': self.updated,
            'skipped': self.skipped,
            'errors': self.errors,
            'dryRun': self.dry_run,
            'articles': self.articles,
        }
        if self.error:
            data['error'] = self.error
        return data


def _slug_of(record: Mapping[str, Any]) -> Optional[str]:
    slug = record.get('slug')
    if isinstance(slug, dict):
        return slug.get('current')
    return slug


def body_summary(record: Mapping[str, Any], max_chars: int) -> str:
    """Plain text of introduction and main content, cut to ``max_chars``."""
    intro = portable_text_to_plain(record.get('introduction'))
    main = portable_text_to_plain(record.get('mainContent'))
    return truncate(f"{intro}\n\n{main}".strip(), max_chars)


def blog_post_summary(record: Mapping[str, Any], max_chars: int) -> str:
    """Plain text of a blog post: stripped ``htmlContent`` when present, else its portable-text ``content``."""
    html = record.get('htmlContent')
    if isinstance(html, str) and html.strip():
        return truncate(strip_html(html), max_chars)
    return truncate(portable_text_to_plain(record.get('content')), max_chars)


def product_names(record: Mapping[str, Any]) -> List[str]:
    """Brand and product name of each featured product, falling back to legacy links."""
    products = record.get('featuredProducts') or record.get('productLinks') or []
    names = []
    for product in products:
        if not isinstance(product, dict):
            continue
        label = f"{product.get('brand') or ''} {product.get('productName') or product.get('name') or ''}".strip()
        if label:
            names.append(label)
    return names


class EnrichmentSweep(ABC):
    """Generic fetch, generate, validate, patch loop over one field set."""

    field_set: FieldSet

    def __init__(
        self,
        gateway: PersistenceGateway,
        generator: ContentGenerator,
        max_records: int = 5,
        delay_seconds: float = 1.0,
        summary_chars: int = 2500,
        sleep: Optional[Sleeper] = None,
    ):
        self.gateway = gateway
        self.generator = generator
        self.max_records = max_records
        self.delay_seconds = delay_seconds
        self.summary_chars = summary_chars
        self._sleep = sleep or asyncio.sleep

    @property
    def name(self) -> str:
        return self.field_set.name

    @abstractmethod
    async def build_patch(self, record: Dict[str, Any], summary: str) -> Optional[DocumentPatch]:
        """
        Generate and validate the field set for one record.

        Returns:
            A patch with the validated fields, or None when nothing usable was produced

        Raises:
            GenerationFailure: If the generator call itself failed
        """

    async def run(self, limit: Optional[int] = None, dry_run: bool = False) -> MigrationResult:
        """
        Run one bounded sweep.

        Args:
            limit: Record cap for this sweep, ``max_records`` when None
            dry_run: Generate and count, but never patch

        Returns:
            MigrationResult with per-outcome counts
        """
        result = MigrationResult(kind=self.name, dry_run=dry_run)
        cap = limit if limit and limit > 0 else self.max_records

        try:
            records = await self.gateway.query_missing(self.field_set, cap)
        except PersistenceFailure as e:
            logger.error(f"{self.name} sweep could not fetch records: {e}")
            result.error = str(e)
            return result

        if not records:
            logger.info(f"{self.name} sweep: nothing to backfill")
            return result

        logger.info(f"{self.name} sweep: {len(records)} record(s) to process{' (dry run)' if dry_run else ''}")

        for index, record in enumerate(records):
            if index:
                await self._sleep(self.delay_seconds)
            await self._process(record, result, dry_run)

        logger.info(
            f"{self.name} sweep done: {result.updated} updated, "
            f"{result.skipped} skipped, {result.errors} errors"
        )
        return result

    def summarize(self, record: Mapping[str, Any]) -> str:
        """Bounded plain-text body handed to the generator."""
        return body_summary(record, self.summary_chars)

    async def _process(self, record: Dict[str, Any], result: MigrationResult, dry_run: bool) -> None:
        result.processed += 1
        title = record.get('title') or record.get('_id')

        try:
            patch = await self.build_patch(record, self.summarize(record))
        except GenerationFailure as e:
            logger.error(f"{self.name}: generation failed for '{title}': {e}")
            result.errors += 1
            return
        except Exception:
            logger.exception(f"{self.name}: unexpected error building content for '{title}'")
            result.errors += 1
            return

        if patch is None or patch.is_empty:
            logger.info(f"{self.name}: no usable content for '{title}', skipping")
            result.skipped += 1
            return

        if dry_run:
            logger.info(f"{self.name}: would add {patch.fields} to '{title}'")
            result.skipped += 1
            result.add_article(record, patch.fields)
            return

        try:
            await self.gateway.patch(record['_id'], patch)
        except PersistenceFailure as e:
            logger.error(f"{self.name}: patch failed for '{title}': {e}")
            result.errors += 1
            return
        except Exception:
            logger.exception(f"{self.name}: unexpected error patching '{title}'")
            result.errors += 1
            return

        logger.info(f"{self.name}: updated '{title}' with {patch.fields}")
        result.updated += 1
        result.add_article(record, patch.fields)
