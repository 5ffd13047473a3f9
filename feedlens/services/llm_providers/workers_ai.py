"""
Cloudflare Workers AI Provider
==============================

Calls the Workers AI REST endpoint (``/accounts/{id}/ai/run/{model}``)
with httpx. Default model is Llama 3.1 8B Instruct.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from feedlens.config import settings
from .base import AuthenticationError, BaseLLMProvider, LLMProviderError, RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "@cf/meta/llama-3.1-8b-instruct"
DEFAULT_TIMEOUT = 60.0


class WorkersAIProvider(BaseLLMProvider):
    """Workers AI text generation over the Cloudflare REST API."""

    name = "workers_ai"

    def __init__(
        self,
        account_id: Optional[str] = None,
        api_token: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_id = account_id or settings.cloudflare_account_id
        self.api_token = api_token or settings.cloudflare_api_token
        if not self.account_id or not self.api_token:
            raise AuthenticationError(
                "Workers AI needs FEEDLENS_CLOUDFLARE_ACCOUNT_ID and FEEDLENS_CLOUDFLARE_API_TOKEN.",
                provider=self.name,
            )
        self.model_name = model or settings.llm_model or DEFAULT_MODEL
        self._base_url = (base_url or settings.cloudflare_api_base).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/accounts/{self.account_id}/ai/run/{self.model_name}"

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: Dict[str, Any] = {
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_token}"},
                )
        except httpx.HTTPError as e:
            raise LLMProviderError(f"Workers AI request failed: {e}", provider=self.name, original_error=e)

        if resp.status_code == 429:
            raise RateLimitError("Workers AI rate limit exceeded.", provider=self.name)
        if resp.status_code in (401, 403):
            raise AuthenticationError("Workers AI rejected the API token.", provider=self.name)
        if resp.status_code >= 400:
            raise LLMProviderError(
                f"Workers AI returned HTTP {resp.status_code}: {resp.text[:200]}",
                provider=self.name,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise LLMProviderError("Workers AI returned a non-JSON body.", provider=self.name, original_error=e)

        if not payload.get("success", True):
            raise LLMProviderError(f"Workers AI error: {payload.get('errors')}", provider=self.name)

        result = (payload.get("result") or {}).get("response")
        if result is None:
            return ""
        # JSON mode may hand back an already-decoded object
        if isinstance(result, (dict, list)):
            return json.dumps(result)
        return str(result)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.model_name,
            "capabilities": ["generate", "system_prompt", "json_mode"],
        }
