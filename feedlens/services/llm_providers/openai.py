"""
OpenAI LLM Provider
===================

OpenAI implementation of BaseLLMProvider.
Uses the official openai SDK with async support.
"""

from typing import Any, Dict, Optional

from openai import (
    APIError,
    AsyncOpenAI,
    AuthenticationError as OpenAIAuthError,
    RateLimitError as OpenAIRateLimitError,
)

from feedlens.config import settings
from .base import AuthenticationError, BaseLLMProvider, LLMProviderError, RateLimitError

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI LLM provider using the Chat Completions API.

    ``json_mode`` maps onto ``response_format={"type": "json_object"}``.
    """

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise AuthenticationError(
                "OpenAI API key not found. Set FEEDLENS_OPENAI_API_KEY in environment.",
                provider=self.name,
            )
        self.client = AsyncOpenAI(api_key=api_key)
        self.model_name = model or settings.llm_model or DEFAULT_MODEL

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Generate a complete response using OpenAI Chat Completions."""
        request: Dict[str, Any] = {
            "model": self.model_name,
            "messages": self._build_messages(prompt, system_prompt),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except OpenAIRateLimitError as e:
            raise RateLimitError(
                "OpenAI API rate limit exceeded. Please try again later.",
                provider=self.name,
                original_error=e,
            )
        except OpenAIAuthError as e:
            raise AuthenticationError("OpenAI API key is invalid.", provider=self.name, original_error=e)
        except APIError as e:
            raise LLMProviderError(f"OpenAI API error: {e}", provider=self.name, original_error=e)
        except Exception as e:
            raise LLMProviderError(f"OpenAI generation failed: {e}", provider=self.name, original_error=e)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> list:
        """Build chat messages list with optional system prompt."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.model_name,
            "capabilities": ["generate", "system_prompt", "json_mode"],
        }
