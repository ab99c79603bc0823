"""CMS persistence and internal linking."""

from .gateway import GEO_FIELDS, REFERENCE_FIELDS, CorpusStats, FieldSet, PersistenceGateway, RelatedDocument
from .linker import RelatedContent, RelatedContentFinder, extract_keywords
from .sanity import SanityGateway

__all__ = [
    'GEO_FIELDS',
    'REFERENCE_FIELDS',
    'CorpusStats',
    'FieldSet',
    'PersistenceGateway',
    'RelatedDocument',
    'RelatedContent',
    'RelatedContentFinder',
    'extract_keywords',
    'SanityGateway',
]
