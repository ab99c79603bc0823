"""Backfill sweeps and schema fixes over the persisted corpus."""

from .engine import EnrichmentSweep, MigrationResult, body_summary
from .geo import GeoSweep
from .references import ReferencesSweep, validate_references
from .schema import FeaturedProduct, migrate_product_links, migrate_reference_types, rename_item_types

__all__ = [
    'EnrichmentSweep',
    'MigrationResult',
    'body_summary',
    'GeoSweep',
    'ReferencesSweep',
    'validate_references',
    'FeaturedProduct',
    'migrate_product_links',
    'migrate_reference_types',
    'rename_item_types',
]
