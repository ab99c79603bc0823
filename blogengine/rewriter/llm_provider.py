"""
LLM provider interface and implementations.

Provides an abstraction over the text-completion backend so the generator
and the migrations never talk to an SDK directly. ``NoLLMProvider`` is used
when no API key is configured and fails every call.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from blogengine.core.errors import GenerationFailure
from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings

logger = get_logger(__name__)

_RETRYABLE = (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """
        Send one prompt and return the model's text reply.

        Args:
            prompt: User message content
            max_tokens: Output limit, provider default when None

        Returns:
            Concatenated text of the reply

        Raises:
            GenerationFailure: If the backend could not produce a reply
        """

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check provider health and availability."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identification name."""


class AnthropicProvider(LLMProvider):
    """Claude models through the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 4000,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self.call_count = 0

    @property
    def provider_name(self) -> str:
        return "Anthropic"

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "provider": self.provider_name,
            "model": self.model,
            "calls_made": self.call_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(_RETRYABLE),
        reraise=True,
    )
    async def _create(self, prompt: str, max_tokens: int):
        return await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        self.call_count += 1
        try:
            response = await self._create(prompt, max_tokens or self.max_tokens)
        except anthropic.APIError as e:
            logger.error(f"Anthropic request failed: {e}")
            raise GenerationFailure(f"LLM request failed: {e}") from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise GenerationFailure("LLM returned an empty reply")
        return text


class NoLLMProvider(LLMProvider):
    """Provider used when no LLM is configured; every call fails."""

    @property
    def provider_name(self) -> str:
        return "NoLLM"

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "unavailable",
            "provider": self.provider_name,
            "message": "No LLM provider configured",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        raise GenerationFailure("No LLM provider configured (set ANTHROPIC_API_KEY)")


class LLMProviderFactory:
    """Factory for creating LLM provider instances."""

    _providers = {
        "anthropic": AnthropicProvider,
        "nollm": NoLLMProvider,
    }

    @classmethod
    def create_provider(cls, settings: Settings) -> LLMProvider:
        """
        Create the provider the settings call for.

        Falls back to NoLLMProvider when no Anthropic key is set.
        """
        if not settings.anthropic_api_key:
            logger.warning("ANTHROPIC_API_KEY not set, content generation disabled")
            return cls._providers["nollm"]()

        return cls._providers["anthropic"](
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
        )

    @classmethod
    def register_provider(cls, name: str, provider_class) -> None:
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> List[str]:
        return list(cls._providers.keys())
