"""
Schema-shape migrations.

Unlike the enrichment sweeps these never call the LLM: they rewrite the shape
of existing data in place and skip records that are already in the new shape,
so running them repeatedly is safe.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from blogengine.core.errors import PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.publisher.gateway import PersistenceGateway
from blogengine.rewriter.models import LEGACY_REFERENCE_TYPE, REFERENCE_TYPE, KeyedItem
from .engine import MigrationResult

logger = get_logger(__name__)


def rename_item_types(items: List[Dict[str, Any]], old_type: str, new_type: str) -> Optional[List[Dict[str, Any]]]:
    """Return ``items`` with ``old_type`` discriminators renamed, or None if none matched."""
    if not any(isinstance(item, dict) and item.get('_type') == old_type for item in items or []):
        return None
    return [
        {**item, '_type': new_type} if isinstance(item, dict) and item.get('_type') == old_type else item
        for item in items
    ]


async def migrate_reference_types(gateway: PersistenceGateway, dry_run: bool = False) -> MigrationResult:
    """Rename article reference items typed ``reference`` to ``sourceReference``."""
    result = MigrationResult(kind='reference-types', dry_run=dry_run)
    try:
        records = await gateway.find_by_item_type('article', 'references', LEGACY_REFERENCE_TYPE)
    except PersistenceFailure as e:
        logger.error(f"Reference type migration could not fetch records: {e}")
        result.error = str(e)
        return result

    for record in records:
        result.processed += 1
        renamed = rename_item_types(record.get('references') or [], LEGACY_REFERENCE_TYPE, REFERENCE_TYPE)
        if renamed is None:
            result.skipped += 1
            continue
        if dry_run:
            result.skipped += 1
            result.add_article(record, ['references'])
            continue
        try:
            await gateway.patch(record['_id'], {'references': renamed})
        except PersistenceFailure as e:
            logger.error(f"Reference type migration failed for {record['_id']}: {e}")
            result.errors += 1
            continue
        result.updated += 1
        result.add_article(record, ['references'])

    if result.updated:
        logger.info(f"Renamed reference item types on {result.updated} article(s)")
    return result


class FeaturedProduct(KeyedItem):
    """Blog-post product entry in the current schema."""
    type: str = Field(default='product', alias='_type')
    product_name: str = Field(default='Product', alias='productName')
    brand: Optional[str] = None
    shopmy_url: Optional[str] = Field(default=None, alias='shopmyUrl')
    amazon_url: Optional[str] = Field(default=None, alias='amazonUrl')
    product_note: Optional[str] = Field(default=None, alias='productNote')

    @field_validator('product_name', mode='before')
    @classmethod
    def default_name(cls, v):
        return v or 'Product'

    @classmethod
    def from_legacy(cls, link: Dict[str, Any]) -> "FeaturedProduct":
        return cls(
            product_name=link.get('name') or link.get('productName'),
            brand=link.get('brand') or None,
            shopmy_url=link.get('shopmyUrl') or None,
            amazon_url=link.get('amazonUrl') or None,
            product_note=link.get('productNote') or None,
        )

    def to_cms(self) -> Dict[str, Any]:
        data = super().to_cms()
        data['hasShopMyLink'] = 'yes' if self.shopmy_url else 'pending'
        data['hasAmazonLink'] = 'yes' if self.amazon_url else 'pending'
        return data


async def migrate_product_links(gateway: PersistenceGateway, dry_run: bool = False) -> MigrationResult:
    """Convert legacy blog-post ``productLinks`` into keyed ``featuredProducts``."""
    result = MigrationResult(kind='product-links', dry_run=dry_run)
    try:
        posts = await gateway.find_legacy_product_posts()
    except PersistenceFailure as e:
        logger.error(f"Product migration could not fetch posts: {e}")
        result.error = str(e)
        return result

    for post in posts:
        result.processed += 1
        links = [link for link in post.get('productLinks') or [] if isinstance(link, dict)]
        if not links or post.get('featuredProducts'):
            result.skipped += 1
            continue
        products = [FeaturedProduct.from_legacy(link).to_cms() for link in links]
        if dry_run:
            result.skipped += 1
            result.add_article(post, ['featuredProducts'])
            continue
        try:
            await gateway.patch(post['_id'], {'featuredProducts': products})
        except PersistenceFailure as e:
            logger.error(f"Product migration failed for {post['_id']}: {e}")
            result.errors += 1
            continue
        result.updated += 1
        result.add_article(post, ['featuredProducts'])

    return result
