"""Sanity CMS gateway over the HTTP API.

Queries use GROQ through ``/data/query``, writes go through ``/data/mutate``
and images through ``/assets/images``. Transient transport errors and
429/5xx responses are retried with exponential backoff; anything still
failing surfaces as ``PersistenceFailure``.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from blogengine.core.errors import PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings
from blogengine.core.utils import slugify
from blogengine.rewriter.models import ArticleDraft
from .gateway import ARRAY, CorpusStats, FieldSet, PatchFields, PersistenceGateway, RelatedDocument, patch_to_set

logger = get_logger(__name__)

_IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

STATS_QUERY = """{
  "total": count(*[_type == "article"]),
  "visible": count(*[_type == "article" && showOnSite == true]),
  "hidden": count(*[_type == "article" && showOnSite != true]),
  "autoGenerated": count(*[_type == "article" && autoGenerated == true]),
  "lastGenerated": *[_type == "article" && autoGenerated == true] | order(publishedAt desc)[0].publishedAt
}"""


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def missing_predicate(field_set: FieldSet) -> str:
    """GROQ filter matching records where any field of the set is absent or empty."""
    clauses = []
    for name, kind in field_set.missing:
        name = _identifier(name)
        if kind == ARRAY:
            clauses.append(f'!defined({name}) || count({name}) == 0')
        else:
            clauses.append(f'!defined({name}) || {name} == ""')
    return ' || '.join(clauses)


def projection(fields: Sequence[str]) -> str:
    parts = []
    for name in fields:
        if name == 'slug':
            parts.append('"slug": slug.current')
        else:
            parts.append(_identifier(name))
    return '{' + ', '.join(parts) + '}'


def _related(records: List[Dict[str, Any]]) -> List[RelatedDocument]:
    return [
        RelatedDocument(
            id=r['_id'],
            title=r.get('title') or '',
            slug=r.get('slug'),
            category=r.get('category'),
        )
        for r in records or []
        if r.get('_id')
    ]


class SanityGateway(PersistenceGateway):
    """Persistence gateway for a Sanity project dataset."""

    def __init__(
        self,
        project_id: str,
        dataset: str,
        token: Optional[str],
        api_version: str = "2024-01-01",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.token = token
        self.api_version = api_version.lstrip('v')
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SanityGateway":
        return cls(
            project_id=settings.sanity_project_id,
            dataset=settings.sanity_dataset,
            token=settings.sanity_token,
            api_version=settings.sanity_api_version,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.project_id}.api.sanity.io/v{self.api_version}"

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {'Authorization': f'Bearer {self.token}'} if self.token else {}
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), headers=headers)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _post(self, path: str, **kwargs) -> Dict[str, Any]:
        response = await self._http().post(f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        return response.json()

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a GROQ query and return its ``result``."""
        try:
            data = await self._post(f"/data/query/{self.dataset}", json={'query': query, 'params': params or {}})
        except (httpx.HTTPError, ValueError) as e:
            raise PersistenceFailure(f"Sanity query failed: {e}") from e
        return data.get('result')

    async def mutate(self, mutations: List[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            return await self._post(
                f"/data/mutate/{self.dataset}",
                params={'returnIds': 'true', 'visibility': 'sync'},
                json={'mutations': mutations},
            )
        except (httpx.HTTPError, ValueError) as e:
            raise PersistenceFailure(f"Sanity mutation failed: {e}") from e

    async def query_missing(self, field_set: FieldSet, limit: int) -> List[Dict[str, Any]]:
        query = (
            f'*[_type == $docType && ({missing_predicate(field_set)})] '
            f'| order({_identifier(field_set.order_by)} desc) [0...{int(limit)}] '
            f'{projection(field_set.projection or ("_id", "title"))}'
        )
        return await self.fetch(query, {'docType': field_set.doc_type}) or []

    async def create(self, draft: ArticleDraft) -> str:
        result = await self.mutate([{'create': draft.to_document()}])
        results = result.get('results') or []
        if not results or not results[0].get('id'):
            raise PersistenceFailure("Sanity create returned no document id")
        doc_id = results[0]['id']
        logger.info(f"Created draft '{draft.title}' ({doc_id})")
        return doc_id

    async def patch(self, doc_id: str, fields: PatchFields) -> None:
        payload = patch_to_set(fields)
        if not payload:
            return
        await self.mutate([{'patch': {'id': doc_id, 'set': payload}}])

    async def find_by_item_type(self, doc_type: str, array_field: str, item_type: str) -> List[Dict[str, Any]]:
        name = _identifier(array_field)
        query = f'*[_type == $docType && count({name}[_type == $itemType]) > 0]{{_id, title, {name}}}'
        return await self.fetch(query, {'docType': doc_type, 'itemType': item_type}) or []

    async def find_legacy_product_posts(self) -> List[Dict[str, Any]]:
        query = (
            '*[_type == "blogPost" && count(productLinks) > 0 '
            '&& (!defined(featuredProducts) || count(featuredProducts) == 0)]'
            '{_id, title, productLinks}'
        )
        return await self.fetch(query) or []

    async def recent_titles(self, days: int) -> List[str]:
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        query = '*[_type == "article" && publishedAt > $cutoff] | order(publishedAt desc) {title}'
        records = await self.fetch(query, {'cutoff': cutoff}) or []
        return [r['title'] for r in records if r.get('title')]

    async def get_stats(self) -> CorpusStats:
        data = await self.fetch(STATS_QUERY) or {}
        return CorpusStats(
            total=data.get('total') or 0,
            visible=data.get('visible') or 0,
            hidden=data.get('hidden') or 0,
            auto_generated=data.get('autoGenerated') or 0,
            last_generated=data.get('lastGenerated'),
        )

    async def upload_image_from_url(self, url: str, filename: str) -> Optional[str]:
        """Download ``url`` and upload it as an image asset. Failures return None."""
        if not url:
            return None
        try:
            image = await self._http().get(url, follow_redirects=True)
            image.raise_for_status()
            data = await self._post(
                f"/assets/images/{self.dataset}",
                params={'filename': f"{slugify(filename)}.jpg"},
                content=image.content,
                headers={'Content-Type': image.headers.get('content-type', 'image/jpeg')},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Image upload failed for {url}: {e}")
            return None

        asset_id = (data.get('document') or {}).get('_id')
        if asset_id:
            logger.info(f"Uploaded image asset {asset_id}")
        return asset_id

    async def search_blog_posts(self, keywords: Sequence[str], category: str, limit: int) -> List[RelatedDocument]:
        query = (
            '*[_type == "blogPost" && showInBlog == true] | score('
            'title match $terms, excerpt match $terms, boost(category == $category, 3)'
            f') | order(_score desc) [0...{int(limit)}] {{_id, title, "slug": slug.current, category}}'
        )
        return _related(await self.fetch(query, {'terms': list(keywords), 'category': category}))

    async def blog_posts_in_category(self, category: str, limit: int) -> List[RelatedDocument]:
        query = (
            '*[_type == "blogPost" && showInBlog == true && category == $category] '
            f'| order(publishedAt desc) [0...{int(limit)}] {{_id, title, "slug": slug.current, category}}'
        )
        return _related(await self.fetch(query, {'category': category}))

    async def search_articles(self, keywords: Sequence[str], exclude_title: str, limit: int) -> List[RelatedDocument]:
        query = (
            '*[_type == "article" && showOnSite == true && title != $currentTitle] '
            '| score(title match $terms, excerpt match $terms) '
            f'| order(_score desc) [0...{int(limit)}] {{_id, title, "slug": slug.current, category}}'
        )
        return _related(await self.fetch(query, {'terms': list(keywords), 'currentTitle': exclude_title}))
