"""
Tests for the LLM service facade and provider factory.
"""

import asyncio
from typing import Any, Dict, Optional

import pytest

from feedlens.services.llm_providers.base import (
    BaseLLMProvider,
    LLMProviderError,
    ProviderNotConfiguredError,
)
from feedlens.services.llm_service import LLMService, create_provider


class _StubProvider(BaseLLMProvider):
    name = "stub"

    def __init__(self, reply: Optional[str] = "ok", delay: float = 0.0):
        self.reply = reply
        self.delay = delay
        self.calls = []

    async def generate(self, prompt, system_prompt=None, temperature=0.7, max_tokens=1024, json_mode=False):
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reply

    def get_model_info(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": "stub-1"}


class TestLLMService:

    @pytest.mark.asyncio
    async def test_generate_forwards_arguments(self):
        provider = _StubProvider("hello")
        service = LLMService(provider=provider)

        result = await service.generate("Hi", system_prompt="be brief", temperature=0.0, max_tokens=64, json_mode=True)

        assert result == "hello"
        assert provider.calls == [
            {"prompt": "Hi", "system_prompt": "be brief", "temperature": 0.0, "max_tokens": 64, "json_mode": True}
        ]

    @pytest.mark.asyncio
    async def test_max_tokens_clamped_to_setting(self, monkeypatch):
        from feedlens.config import settings

        monkeypatch.setattr(settings, "llm_max_tokens", 100)
        provider = _StubProvider()

        await LLMService(provider=provider).generate("Hi", max_tokens=5000)
        await LLMService(provider=provider).generate("Hi")

        assert [c["max_tokens"] for c in provider.calls] == [100, 100]

    @pytest.mark.asyncio
    async def test_default_temperature_from_settings(self, monkeypatch):
        from feedlens.config import settings

        monkeypatch.setattr(settings, "llm_temperature", 0.3)
        provider = _StubProvider()

        await LLMService(provider=provider).generate("Hi")

        assert provider.calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_none_reply_becomes_empty_string(self):
        assert await LLMService(provider=_StubProvider(None)).generate("Hi") == ""

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_error(self):
        service = LLMService(provider=_StubProvider(delay=1.0))

        with pytest.raises(LLMProviderError, match="timed out"):
            await service.generate("Hi", timeout=0.01)

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self):
        # conftest leaves Cloudflare credentials unset
        service = LLMService(provider_name="workers_ai")

        assert service.is_configured() is False
        with pytest.raises(ProviderNotConfiguredError):
            await service.generate("Hi")

    def test_model_info(self):
        service = LLMService(provider=_StubProvider())
        info = service.get_model_info()
        assert info["provider"] == "stub"
        assert "configured_max_tokens" in info

    def test_model_info_before_first_use(self):
        info = LLMService(provider_name="openai").get_model_info()
        assert info == {"provider": "openai", "model": "not_initialized"}


def test_create_provider_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        create_provider("llamafarm")


def test_unknown_provider_name_is_not_configured():
    assert LLMService(provider_name="llamafarm").is_configured() is False
