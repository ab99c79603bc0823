"""
Utility functions for the blog engine.

Provides text normalization, slug and key generation, URL validation and
helpers for the CMS's portable-text rich-text format.
"""

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse


def slugify(text: str, max_length: int = 80) -> str:
    """
    Convert text to URL-safe slug.

    Args:
        text: Text to convert
        max_length: Maximum slug length

    Returns:
        URL-safe slug
    """
    if not text:
        return ""

    # Normalize unicode and remove accents
    normalized = unicodedata.normalize('NFKD', text)
    ascii_only = normalized.encode('ascii', 'ignore').decode('ascii')

    slug = re.sub(r'[^a-z0-9]+', '-', ascii_only.lower())
    slug = slug.strip('-')
    slug = re.sub(r'-+', '-', slug)

    if len(slug) > max_length:
        # Try to break at word boundary
        truncated = slug[:max_length]
        last_hyphen = truncated.rfind('-')
        if last_hyphen > max_length * 0.7:
            slug = truncated[:last_hyphen]
        else:
            slug = truncated

    return slug or "article"


def clean_text(text: str) -> str:
    """
    Clean text content by removing extra whitespace and normalizing.

    Args:
        text: Text to clean

    Returns:
        Cleaned text
    """
    if not text:
        return ""

    text = unicodedata.normalize('NFKC', text)
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def strip_html(content: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    if not content:
        return ""
    return clean_text(re.sub(r'<[^>]+>', ' ', content))


def generate_key() -> str:
    """
    Generate a unique key for an array item stored in the CMS.

    Keys are random and never derived from the item's content, so two
    identical items in one document still get different keys.
    """
    return uuid.uuid4().hex[:12]


def validate_url(url: Optional[str]) -> bool:
    """
    Validate if URL is properly formed and safe.

    Loopback addresses, ``localhost`` and dotless hosts such as ``intranet``
    are rejected on purpose. Every URL checked here ends up as a public
    reference link in a published article, so only hosts that resolve on the
    open web are accepted. Internal or placeholder URLs from the model are
    dropped instead of reaching the CMS.

    Args:
        url: URL to validate

    Returns:
        True if URL is an absolute http(s) URL with a public-looking host
    """
    if not url or not isinstance(url, str):
        return False

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False

    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return False

    host = (parsed.hostname or '').lower()
    if not host or host in ('localhost', '127.0.0.1', '0.0.0.0'):
        return False

    # Require a dotted hostname, e.g. "example.com"
    return '.' in host


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


# ---------------------------------------------------------------------------
# Portable text
# ---------------------------------------------------------------------------

def text_to_blocks(text: str) -> List[Dict[str, Any]]:
    """Split plain text on blank lines into keyed portable-text blocks."""
    paragraphs = [p.strip() for p in re.split(r'\n\s*\n+', text or '') if p.strip()]
    return [
        {
            "_type": "block",
            "_key": generate_key(),
            "style": "normal",
            "markDefs": [],
            "children": [
                {
                    "_type": "span",
                    "_key": generate_key(),
                    "text": paragraph,
                    "marks": [],
                }
            ],
        }
        for paragraph in paragraphs
    ]


def ensure_portable_text(content: Any) -> List[Dict[str, Any]]:
    """
    Coerce content into a list of keyed portable-text blocks.

    Strings are split into paragraphs. Existing blocks keep their keys and
    missing keys are filled in on blocks and their children.
    """
    if not content:
        return []

    if isinstance(content, str):
        return text_to_blocks(content)

    if isinstance(content, list):
        blocks = []
        for block in content:
            if isinstance(block, str):
                blocks.extend(text_to_blocks(block))
                continue
            if not isinstance(block, dict):
                continue
            children = [
                {**child, "_key": child.get("_key") or generate_key()}
                for child in block.get("children") or []
                if isinstance(child, dict)
            ]
            blocks.append({**block, "_key": block.get("_key") or generate_key(), "children": children})
        return blocks

    return []


def portable_text_to_plain(blocks: Optional[Iterable[Dict[str, Any]]]) -> str:
    """Extract the text of every block-type entry, one line per block."""
    if not blocks or isinstance(blocks, (str, bytes)):
        return ""

    lines = []
    for block in blocks:
        if not isinstance(block, dict) or block.get("_type") != "block":
            continue
        children = block.get("children") or []
        lines.append("".join(str(child.get("text", "")) for child in children if isinstance(child, dict)))
    return "\n".join(lines)


def truncate(text: str, max_chars: int) -> str:
    """Hard-truncate text to ``max_chars`` characters."""
    if not text:
        return ""
    return text[:max_chars]
