#!/usr/bin/env python3
"""Run the CMS migrations from a shell.

Runs the schema fixes (reference type rename, legacy product links), the
GEO backfill for articles and for blog posts, and the references backfill
against the configured Sanity dataset.

Usage:
    python scripts/run_migrations.py --dry-run --limit 10
    python scripts/run_migrations.py --only geo
    python scripts/run_migrations.py --only blog-geo --limit 3
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from blogengine.core.logging import get_logger, setup_logging
from blogengine.core.settings import get_settings
from blogengine.migrator.schema import migrate_product_links
from blogengine.services.container import build_services

MIGRATIONS = ('reference-types', 'products', 'geo', 'blog-geo', 'references')

logger = get_logger("blogengine.scripts.run_migrations")


async def run(only: list, limit: int, dry_run: bool, services=None) -> int:
    services = services or build_services(get_settings())
    if not services.cms_ready:
        logger.error("Sanity is not configured; set SANITY_PROJECT_ID and SANITY_TOKEN")
        return 1

    results = {}
    try:
        if 'reference-types' in only:
            results['reference-types'] = await services.run_reference_types(dry_run=dry_run)
        if 'products' in only:
            results['products'] = await migrate_product_links(services.gateway, dry_run=dry_run)
        if 'geo' in only:
            results['geo'] = await services.run_geo(limit=limit, dry_run=dry_run)
        if 'blog-geo' in only:
            results['blog-geo'] = await services.run_blog_post_geo(limit=limit, dry_run=dry_run)
        if 'references' in only:
            results['references'] = await services.run_references(limit=limit, dry_run=dry_run)
    finally:
        await services.aclose()

    print(json.dumps({name: r.to_dict() for name, r in results.items()}, indent=2))
    return 0 if all(r.success for r in results.values()) else 1


def main():
    """CLI entry point for the migrations."""
    parser = argparse.ArgumentParser(description='Blog engine CMS migrations')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Generate and report changes without writing them'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=None,
        help='Maximum records per backfill sweep (default: MIGRATION_MAX_RECORDS)'
    )
    parser.add_argument(
        '--only',
        choices=MIGRATIONS,
        action='append',
        help='Run only this migration (repeatable)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    setup_logging("migrations")
    if args.verbose:
        logging.getLogger('blogengine').setLevel(logging.DEBUG)

    return asyncio.run(run(args.only or list(MIGRATIONS), args.limit, args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
