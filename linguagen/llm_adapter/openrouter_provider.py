"""
OpenRouter provider (remote model router).

OpenRouter speaks the OpenAI Chat Completions protocol, so requests go
through the ``openai`` SDK pointed at https://openrouter.ai/api/v1.
Retries are disabled: a failed call surfaces immediately.

Besides the completion itself, two diagnostic side calls exist:
  - on HTTP 429 the key/quota endpoint is queried and logged
  - after a success, a detached task fetches the generation's cost
Neither can change what the caller receives.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from linguagen.config.runtime import ProviderType, RuntimeConfig
from linguagen.errors import ConfigurationError, UpstreamError
from linguagen.llm_adapter.base import LLMProvider, Message, json_object
from linguagen.observability.metrics import llm_tokens
from linguagen.utils.tasks import TaskRegistry

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
APP_TITLE = "Language AI App"
DEFAULT_REFERER = "http://localhost:5173"


def _auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


async def fetch_key_info(http_client: httpx.AsyncClient, api_key: str) -> dict[str, Any]:
    """Return OpenRouter's usage/limit information for ``api_key``."""
    if not api_key:
        raise ConfigurationError("Missing OPENROUTER_API_KEY")
    try:
        resp = await http_client.get(f"{OPENROUTER_BASE_URL}/key", headers=_auth_headers(api_key))
    except httpx.HTTPError as exc:
        raise UpstreamError(ProviderType.OPENROUTER.value, detail=f"Key endpoint unreachable: {exc}") from exc
    if resp.status_code != 200:
        raise UpstreamError(
            ProviderType.OPENROUTER.value,
            resp.status_code,
            f"Key endpoint error {resp.status_code}",
        )
    return json_object(resp, ProviderType.OPENROUTER.value)


class OpenRouterProvider(LLMProvider):
    name = ProviderType.OPENROUTER

    def __init__(
        self,
        config: RuntimeConfig,
        http_client: httpx.AsyncClient,
        tasks: TaskRegistry | None = None,
        cost_lookup_delay: float = 0.5,
    ) -> None:
        super().__init__(config, http_client, tasks)
        self._cost_lookup_delay = cost_lookup_delay

    async def _complete(
        self,
        *,
        messages: list[Message],
        max_tokens: int,
        response_schema: dict[str, Any] | None,
        schema_name: str | None,
    ) -> str:
        settings = self._config.openrouter
        if not settings.api_key:
            raise ConfigurationError("Missing OPENROUTER_API_KEY")

        client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=OPENROUTER_BASE_URL,
            http_client=self._http,
            max_retries=0,
            default_headers={
                "HTTP-Referer": settings.app_url or DEFAULT_REFERER,
                "X-Title": APP_TITLE,
            },
        )

        kwargs: dict[str, Any] = {}
        if response_schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name or "structured_output",
                    "strict": True,
                    "schema": response_schema,
                },
            }

        try:
            completion = await client.chat.completions.create(
                model=settings.model,
                messages=messages,
                max_tokens=max_tokens,
                extra_body={"reasoning": {"exclude": True}},
                **kwargs,
            )
        except APIStatusError as exc:
            logger.error("[LLM openrouter] HTTP %d", exc.status_code)
            if exc.status_code == 429:
                await self._log_rate_limit(settings.api_key)
            raise UpstreamError(self.name.value, exc.status_code) from exc
        except APIConnectionError as exc:
            logger.error("[LLM openrouter] connection failed: %s", exc)
            raise UpstreamError(self.name.value, detail=f"openrouter unreachable: {exc}") from exc
        except APIError as exc:
            logger.error("[LLM openrouter] unreadable response: %s", exc)
            raise UpstreamError(
                self.name.value,
                getattr(exc, "status_code", None),
                "invalid response body",
            ) from exc

        usage = completion.usage
        if usage is not None:
            llm_tokens.labels(provider=self.name.value, direction="prompt").inc(usage.prompt_tokens or 0)
            llm_tokens.labels(provider=self.name.value, direction="completion").inc(
                usage.completion_tokens or 0
            )
            logger.info(
                "[LLM openrouter] tokens: %d->%d (%d total) id=%s",
                usage.prompt_tokens or 0,
                usage.completion_tokens or 0,
                usage.total_tokens or 0,
                completion.id,
            )

        if completion.id and self._tasks is not None:
            self._tasks.spawn(
                self._log_generation_cost(completion.id, settings.api_key),
                name=f"cost-{completion.id}",
            )

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def _log_rate_limit(self, api_key: str) -> None:
        try:
            info = (await fetch_key_info(self._http, api_key)).get("data") or {}
            logger.warning(
                "[LLM openrouter] 429 rate-limited. usage=%s limit=%s freeTier=%s",
                info.get("usage"),
                info.get("limit"),
                info.get("is_free_tier"),
            )
        except Exception as exc:
            logger.warning("[LLM openrouter] 429 and failed to fetch key info: %s", exc)

    async def _log_generation_cost(self, generation_id: str, api_key: str) -> None:
        # Cost data is often not ready immediately, and free models may never report it.
        try:
            await asyncio.sleep(self._cost_lookup_delay)
            resp = await self._http.get(
                f"{OPENROUTER_BASE_URL}/generation",
                params={"id": generation_id},
                headers=_auth_headers(api_key),
            )
            if resp.status_code != 200:
                return
            data = resp.json().get("data") or {}
            total_cost = data.get("total_cost")
            if isinstance(total_cost, (int, float)):
                logger.info(
                    "[LLM openrouter] cost: $%.6f | native tokens: %s->%s | provider: %s",
                    total_cost,
                    data.get("tokens_prompt") or 0,
                    data.get("tokens_completion") or 0,
                    data.get("provider_name") or "unknown",
                )
        except Exception as exc:
            logger.debug("Cost lookup for %s failed: %s", generation_id, exc)
