"""
Ollama provider (local model server).

Uses the native ``/api/chat`` endpoint with streaming disabled. No API key
is needed. A JSON schema, when given, is passed as the ``format``
constraint; the token cap maps to ``options.num_predict``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from linguagen.config.runtime import DEFAULT_OLLAMA_HOST, ProviderType
from linguagen.errors import UpstreamError
from linguagen.llm_adapter.base import LLMProvider, Message, json_object

logger = logging.getLogger(__name__)


async def list_local_models(http_client: httpx.AsyncClient, host: str) -> list[str]:
    """Names of the models installed on the Ollama server at ``host``."""
    url = f"{(host or DEFAULT_OLLAMA_HOST).rstrip('/')}/api/tags"
    logger.info("Fetching Ollama models from %s", url)
    try:
        resp = await http_client.get(url)
    except httpx.HTTPError as exc:
        raise UpstreamError(ProviderType.OLLAMA.value, detail=f"ollama unreachable: {exc}") from exc
    if not resp.is_success:
        raise UpstreamError(ProviderType.OLLAMA.value, resp.status_code, f"Ollama returned {resp.status_code}")
    models = json_object(resp, ProviderType.OLLAMA.value).get("models")
    if not isinstance(models, list):
        return []
    return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]


class OllamaProvider(LLMProvider):
    name = ProviderType.OLLAMA

    async def _complete(
        self,
        *,
        messages: list[Message],
        max_tokens: int,
        response_schema: dict[str, Any] | None,
        schema_name: str | None,
    ) -> str:
        host = (self._config.ollama.host or DEFAULT_OLLAMA_HOST).rstrip("/")
        payload: dict[str, Any] = {
            "model": self._config.ollama.model,
            "messages": messages,
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        if response_schema:
            payload["format"] = response_schema

        try:
            resp = await self._http.post(f"{host}/api/chat", json=payload)
        except httpx.HTTPError as exc:
            logger.error("[LLM ollama] request failed: %s", exc)
            raise UpstreamError(self.name.value, detail=f"ollama unreachable: {exc}") from exc

        if not resp.is_success:
            logger.error("[LLM ollama] HTTP %d", resp.status_code)
            raise UpstreamError(self.name.value, resp.status_code)

        data = json_object(resp, self.name.value)
        message = data.get("message")
        if not isinstance(message, dict):
            message = {}
        return message.get("content") or data.get("response") or ""
