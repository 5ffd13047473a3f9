"""
LLM Provider Base Class
=======================

Abstract base class and exceptions for LLM providers. FeedLens treats the
model as a black box: a prompt goes in, free text comes out.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""

    def __init__(self, message: str, provider: str = "unknown", original_error: Optional[Exception] = None):
        self.message = message
        self.provider = provider
        self.original_error = original_error
        super().__init__(self.message)


class RateLimitError(LLMProviderError):
    """Raised when provider rate limit is exceeded."""


class AuthenticationError(LLMProviderError):
    """Raised when API key is invalid or missing."""


class ProviderNotConfiguredError(LLMProviderError):
    """Raised when no usable provider can be built from settings."""


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implementations must handle:
    - System prompts/instructions
    - An optional JSON output hint (``json_mode``) where the API supports one
    - Error mapping to the common exceptions above
    """

    name: str = "unknown"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """
        Generate a complete response string.

        Args:
            prompt: The user prompt to respond to
            system_prompt: Optional system instructions
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens in response
            json_mode: Ask the API for a JSON object when it supports it

        Returns:
            Generated text response (possibly empty)

        Raises:
            LLMProviderError: On generation failure
        """

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        """Return metadata about the configured model."""
