"""
Gemini LLM Provider
===================

Google Gemini implementation of BaseLLMProvider.
Uses the google-genai SDK (v1.0+) with optional Vertex AI auth.
"""

import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from feedlens.config import settings
from .base import AuthenticationError, BaseLLMProvider, LLMProviderError, RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiProvider(BaseLLMProvider):
    """
    Gemini provider. ``json_mode`` sets ``response_mime_type`` to
    ``application/json``.
    """

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, use_gca: Optional[bool] = None):
        self.use_gca = settings.google_genai_use_gca if use_gca is None else use_gca
        api_key = api_key or settings.gemini_api_key
        self.model_name = model or settings.llm_model or DEFAULT_MODEL

        if not self.use_gca and not api_key:
            raise AuthenticationError(
                "Gemini API key not found. Set FEEDLENS_GEMINI_API_KEY or enable Vertex AI.",
                provider=self.name,
            )

        if self.use_gca:
            logger.info("GeminiProvider: initializing with Vertex AI credentials")
            self.client = genai.Client(vertexai=True)
        else:
            self.client = genai.Client(api_key=api_key)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Generate a complete response using Gemini."""
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            system_instruction=system_prompt,
            response_mime_type="application/json" if json_mode else None,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            self._handle_exception(e)

        if not response.candidates:
            raise LLMProviderError(
                "Generation blocked by safety filters or no candidates returned.",
                provider=self.name,
            )
        return response.text or ""

    def _handle_exception(self, e: Exception):
        """Map SDK errors to standard provider errors."""
        err_str = str(e).lower()

        if "429" in err_str or "resource_exhausted" in err_str or "quota" in err_str:
            raise RateLimitError(f"Gemini quota exceeded: {e}", provider=self.name, original_error=e)

        if "401" in err_str or "403" in err_str or "api key" in err_str:
            raise AuthenticationError(f"Gemini authentication failed: {e}", provider=self.name, original_error=e)

        raise LLMProviderError(f"Gemini provider error: {e}", provider=self.name, original_error=e)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.model_name,
            "capabilities": ["generate", "system_instruction", "json_mode"],
            "auth_mode": "gca" if self.use_gca else "api_key",
        }
