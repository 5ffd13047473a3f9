from .base import (
    AuthenticationError,
    BaseLLMProvider,
    LLMProviderError,
    ProviderNotConfiguredError,
    RateLimitError,
)

__all__ = [
    "AuthenticationError",
    "BaseLLMProvider",
    "LLMProviderError",
    "ProviderNotConfiguredError",
    "RateLimitError",
]
