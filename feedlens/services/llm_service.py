"""
LLM Service
===========

Main entry point for LLM interactions in FeedLens.
Acts as a factory and facade for the concrete providers.

The provider is resolved lazily from settings on first use so the API can
start (and serve dashboards) without model credentials; only the calls
that need a model fail with ProviderNotConfiguredError.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from feedlens.config import settings
from feedlens.services.llm_providers.base import (
    AuthenticationError,
    BaseLLMProvider,
    LLMProviderError,
    ProviderNotConfiguredError,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("gemini", "openai", "anthropic", "workers_ai")


def create_provider(provider_name: str) -> BaseLLMProvider:
    """Build a provider instance from settings."""
    provider_type = provider_name.lower()

    if provider_type == "gemini":
        from feedlens.services.llm_providers.gemini import GeminiProvider
        return GeminiProvider()
    if provider_type == "openai":
        from feedlens.services.llm_providers.openai import OpenAIProvider
        return OpenAIProvider()
    if provider_type == "anthropic":
        from feedlens.services.llm_providers.anthropic import AnthropicProvider
        return AnthropicProvider()
    if provider_type == "workers_ai":
        from feedlens.services.llm_providers.workers_ai import WorkersAIProvider
        return WorkersAIProvider()

    raise ValueError(
        f"Unsupported LLM provider: {provider_name}. Use one of {', '.join(SUPPORTED_PROVIDERS)}."
    )


class LLMService:
    """
    Facade over a single BaseLLMProvider.

    Args:
        provider: Ready-made provider (tests, scripts). Skips settings lookup.
        provider_name: Provider to build from settings instead of the default.
    """

    def __init__(self, provider: Optional[BaseLLMProvider] = None, provider_name: Optional[str] = None):
        self._provider = provider
        self._provider_name = provider_name or settings.llm_provider

    @property
    def provider(self) -> Optional[BaseLLMProvider]:
        return self._provider

    def _resolve_provider(self) -> BaseLLMProvider:
        if self._provider is None:
            try:
                self._provider = create_provider(self._provider_name)
            except (AuthenticationError, ValueError) as exc:
                raise ProviderNotConfiguredError(
                    f"LLM not configured: {exc}",
                    provider=self._provider_name,
                    original_error=exc,
                )
            logger.info("LLMService: using provider=%s", self._provider_name)
        return self._provider

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate a response using the configured provider."""
        provider = self._resolve_provider()
        # Clamp max_tokens to configured ceiling
        effective_max_tokens = min(max_tokens, settings.llm_max_tokens) if max_tokens else settings.llm_max_tokens
        effective_timeout = timeout or settings.llm_timeout_s

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                provider.generate(
                    prompt=prompt,
                    system_prompt=system_prompt,
                    temperature=settings.llm_temperature if temperature is None else temperature,
                    max_tokens=effective_max_tokens,
                    json_mode=json_mode,
                ),
                timeout=effective_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("llm_generate_timeout", extra={"llm.timeout_s": effective_timeout})
            raise LLMProviderError(
                f"Generation timed out after {effective_timeout}s",
                provider=self._provider_name,
                original_error=exc,
            )
        except LLMProviderError as exc:
            logger.warning(
                "llm_generate_failed",
                extra={"llm.provider": exc.provider, "llm.error": type(exc).__name__},
            )
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "llm_generate_completed",
            extra={"llm.provider": self._provider_name, "latency_ms": latency_ms, "json_mode": json_mode},
        )
        return result or ""

    def get_model_info(self) -> Dict[str, Any]:
        """Get metadata about the current provider and model."""
        if self._provider is None:
            return {"provider": self._provider_name, "model": "not_initialized"}
        info = self._provider.get_model_info()
        info["configured_temperature"] = settings.llm_temperature
        info["configured_max_tokens"] = settings.llm_max_tokens
        return info

    def is_configured(self) -> bool:
        """Check whether a provider can be built."""
        try:
            self._resolve_provider()
        except ProviderNotConfiguredError:
            return False
        return True
