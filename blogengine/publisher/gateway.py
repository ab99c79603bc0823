"""Persistence gateway contract.

The pipeline and the migrations only talk to the CMS through this interface.
A ``FieldSet`` names a group of derived fields and the "absent or empty"
predicate that marks a record as needing enrichment; gateways evaluate that
predicate server-side so a sweep never loads the whole corpus.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from blogengine.rewriter.models import ArticleDraft, DocumentPatch

STRING = "string"
ARRAY = "array"


@dataclass(frozen=True)
class FieldSet:
    """
    A group of document fields that is backfilled as a unit.

    Attributes:
        name: Short label used in logs and results
        doc_type: CMS document type the sweep covers
        missing: (field, kind) pairs; a record needs enrichment when ANY is absent or empty
        projection: Fields fetched for each matching record
        order_by: Field sorted descending when selecting records
    """
    name: str
    doc_type: str
    missing: Tuple[Tuple[str, str], ...]
    projection: Tuple[str, ...] = ()
    order_by: str = "publishedAt"

    def needs_enrichment(self, record: Mapping[str, Any]) -> bool:
        """Evaluate the missing-field predicate against one record."""
        for name, kind in self.missing:
            value = record.get(name)
            if value is None:
                return True
            if kind == STRING and not str(value).strip():
                return True
            if kind == ARRAY and len(value) == 0:
                return True
        return False


GEO_FIELDS = FieldSet(
    name="geo",
    doc_type="article",
    missing=(("quickAnswer", STRING), ("keyTakeaways", ARRAY), ("faqSection", ARRAY)),
    projection=(
        "_id", "title", "slug", "category", "excerpt", "introduction", "mainContent",
        "quickAnswer", "keyTakeaways", "expertTips", "faqSection", "kyndallsTake",
    ),
)

BLOG_POST_GEO_FIELDS = FieldSet(
    name="blog-post-geo",
    doc_type="blogPost",
    missing=GEO_FIELDS.missing,
    projection=(
        "_id", "title", "slug", "category", "excerpt", "htmlContent", "content",
        "featuredProducts", "productLinks",
        "quickAnswer", "keyTakeaways", "expertTips", "faqSection", "kyndallsTake",
    ),
)

REFERENCE_FIELDS = FieldSet(
    name="references",
    doc_type="article",
    missing=(("references", ARRAY),),
    projection=("_id", "title", "slug", "quickAnswer", "introduction", "mainContent", "references"),
)


@dataclass
class CorpusStats:
    """Article counters for the status surface."""
    total: int = 0
    visible: int = 0
    hidden: int = 0
    auto_generated: int = 0
    last_generated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalArticles': self.total,
            'visibleArticles': self.visible,
            'hiddenArticles': self.hidden,
            'autoGenerated': self.auto_generated,
            'lastGenerated': self.last_generated,
        }


@dataclass
class RelatedDocument:
    """Minimal view of a document used for internal linking."""
    id: str
    title: str
    slug: Optional[str] = None
    category: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


PatchFields = Union[DocumentPatch, Mapping[str, Any]]


class PersistenceGateway(ABC):
    """Abstract CMS datastore used by the pipeline and the migrations."""

    @abstractmethod
    async def query_missing(self, field_set: FieldSet, limit: int) -> List[Dict[str, Any]]:
        """Records of ``field_set.doc_type`` where any field of the set is absent or empty, newest first."""

    @abstractmethod
    async def create(self, draft: ArticleDraft) -> str:
        """Create a document and return its id. Raises PersistenceFailure."""

    @abstractmethod
    async def patch(self, doc_id: str, fields: PatchFields) -> None:
        """Set only the given fields on a document. Raises PersistenceFailure."""

    @abstractmethod
    async def find_by_item_type(self, doc_type: str, array_field: str, item_type: str) -> List[Dict[str, Any]]:
        """Documents whose ``array_field`` holds at least one item with ``_type == item_type``."""

    @abstractmethod
    async def find_legacy_product_posts(self) -> List[Dict[str, Any]]:
        """Blog posts with ``productLinks`` but no ``featuredProducts``."""

    @abstractmethod
    async def recent_titles(self, days: int) -> List[str]:
        """Titles of articles published within the last ``days`` days."""

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Article counters."""

    @abstractmethod
    async def upload_image_from_url(self, url: str, filename: str) -> Optional[str]:
        """Download an image and store it as an asset; returns the asset id or None."""

    @abstractmethod
    async def search_blog_posts(self, keywords: Sequence[str], category: str, limit: int) -> List[RelatedDocument]:
        """Visible blog posts ranked by keyword match, boosted by category."""

    @abstractmethod
    async def blog_posts_in_category(self, category: str, limit: int) -> List[RelatedDocument]:
        """Most recent visible blog posts in a category."""

    @abstractmethod
    async def search_articles(self, keywords: Sequence[str], exclude_title: str, limit: int) -> List[RelatedDocument]:
        """Visible articles ranked by keyword match, excluding one title."""

    async def aclose(self) -> None:
        """Release transport resources."""


def patch_to_set(fields: PatchFields) -> Dict[str, Any]:
    """Normalise a patch into the ``set`` payload, dropping unset values."""
    if isinstance(fields, DocumentPatch):
        return fields.to_set()
    return {k: v for k, v in dict(fields).items() if v is not None}
