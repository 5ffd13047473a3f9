"""
Anthropic Claude LLM Provider
==============================

Anthropic implementation of BaseLLMProvider.
Uses the official anthropic SDK with async support.
"""

from typing import Any, Dict, Optional

from anthropic import (
    APIError,
    AsyncAnthropic,
    AuthenticationError as AnthropicAuthError,
    RateLimitError as AnthropicRateLimitError,
)

from feedlens.config import settings
from .base import AuthenticationError, BaseLLMProvider, LLMProviderError, RateLimitError

DEFAULT_MODEL = "claude-3-5-haiku-latest"


class AnthropicProvider(BaseLLMProvider):
    """
    Anthropic Claude provider using the Messages API.

    The Messages API has no JSON response switch, so ``json_mode`` is
    accepted and ignored; the classifier tolerates prose around the object.
    """

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or settings.anthropic_api_key
        if not api_key:
            raise AuthenticationError(
                "Anthropic API key not found. Set FEEDLENS_ANTHROPIC_API_KEY in environment.",
                provider=self.name,
            )
        self.client = AsyncAnthropic(api_key=api_key)
        self.model_name = model or settings.llm_model or DEFAULT_MODEL

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Generate a complete response using the Anthropic Messages API."""
        request: Dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            response = await self.client.messages.create(**request)
        except AnthropicRateLimitError as e:
            raise RateLimitError(
                "Anthropic API rate limit exceeded. Please try again later.",
                provider=self.name,
                original_error=e,
            )
        except AnthropicAuthError as e:
            raise AuthenticationError("Anthropic API key is invalid.", provider=self.name, original_error=e)
        except APIError as e:
            raise LLMProviderError(f"Anthropic API error: {e}", provider=self.name, original_error=e)
        except Exception as e:
            raise LLMProviderError(f"Anthropic generation failed: {e}", provider=self.name, original_error=e)

        return self._extract_text(response)

    @staticmethod
    def _extract_text(response) -> str:
        """Concatenate the text blocks of a Messages response."""
        return "".join(block.text for block in response.content if hasattr(block, "text"))

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.model_name,
            "capabilities": ["generate", "system_prompt"],
        }
