"""
Article generation with an LLM.

This package contains modules for:
- Draft and patch models (models.py)
- Tolerant JSON extraction from model replies (parsing.py)
- LLM provider abstraction (llm_provider.py)
- Prompt builders (prompts.py)
- Article, GEO and reference generation (generator.py)
"""

from .generator import ContentGenerator, GeneratedArticle, GeoContent, infer_category
from .llm_provider import AnthropicProvider, LLMProvider, LLMProviderFactory, NoLLMProvider
from .models import (
    ArticleDraft,
    ExpertTip,
    FAQItem,
    GeoPatch,
    KeyTakeaway,
    KyndallsTake,
    ReferencesPatch,
    SourceReference,
    build_keyed_items,
)
from .parsing import ParsedJSON, ParseError, parse_llm_json

__all__ = [
    "ContentGenerator",
    "GeneratedArticle",
    "GeoContent",
    "infer_category",
    "AnthropicProvider",
    "LLMProvider",
    "LLMProviderFactory",
    "NoLLMProvider",
    "ArticleDraft",
    "ExpertTip",
    "FAQItem",
    "GeoPatch",
    "KeyTakeaway",
    "KyndallsTake",
    "ReferencesPatch",
    "SourceReference",
    "build_keyed_items",
    "ParsedJSON",
    "ParseError",
    "parse_llm_json",
]
