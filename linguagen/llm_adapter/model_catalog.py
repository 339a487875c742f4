"""
OpenRouter model catalog with a 24 hour in-process cache.

The catalog is large and changes rarely, so it is fetched at most once per
TTL no matter how often the settings screen asks for it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from linguagen.config.runtime import ProviderType
from linguagen.errors import ConfigurationError, UpstreamError
from linguagen.llm_adapter.base import json_object
from linguagen.llm_adapter.openrouter_provider import OPENROUTER_BASE_URL

logger = logging.getLogger(__name__)

MODELS_TTL_SECONDS = 24 * 60 * 60

_SIMPLIFIED_FIELDS = (
    "id",
    "name",
    "description",
    "context_length",
    "pricing",
    "supported_parameters",
    "architecture",
    "top_provider",
    "created",
    "hugging_face_id",
)


class ModelsCache:
    """Holds the last fetched model list and when it was fetched."""

    def __init__(
        self,
        ttl_seconds: float = MODELS_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self.models: list[dict[str, Any]] | None = None
        self.last_fetched_at: float = 0.0

    def is_fresh(self) -> bool:
        return self.models is not None and (self._clock() - self.last_fetched_at) < self._ttl

    async def get(
        self,
        fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
    ) -> list[dict[str, Any]]:
        if self.is_fresh():
            return self.models
        models = await fetch()
        self.models = models
        self.last_fetched_at = self._clock()
        logger.info("Cached %d OpenRouter models", len(models))
        return models


async def fetch_openrouter_models(http_client: httpx.AsyncClient, api_key: str) -> list[dict[str, Any]]:
    if not api_key:
        raise ConfigurationError("Missing OPENROUTER_API_KEY")
    logger.info("Fetching OpenRouter models")
    try:
        resp = await http_client.get(
            f"{OPENROUTER_BASE_URL}/models",
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.HTTPError as exc:
        raise UpstreamError(ProviderType.OPENROUTER.value, detail=f"Models API unreachable: {exc}") from exc
    if resp.status_code != 200:
        raise UpstreamError(
            ProviderType.OPENROUTER.value,
            resp.status_code,
            f"Models API error {resp.status_code}",
        )
    data = json_object(resp, ProviderType.OPENROUTER.value).get("data")
    if not isinstance(data, list):
        return []
    return [m for m in data if isinstance(m, dict)]


def supports_structured_output(model: dict[str, Any]) -> bool:
    params = model.get("supported_parameters") or []
    return "structured_outputs" in params or "response_format" in params


def is_free(model: dict[str, Any]) -> bool:
    pricing = model.get("pricing") or {}
    if pricing.get("prompt") == "0" and pricing.get("completion") == "0":
        return True
    return "free" in str(model.get("id") or "").lower() or "free" in str(model.get("name") or "").lower()


def filter_models(
    models: list[dict[str, Any]],
    structured_only: bool = False,
    free_only: bool = False,
) -> list[dict[str, Any]]:
    """Apply the settings-screen filters and trim each descriptor."""
    selected = models
    if structured_only:
        selected = [m for m in selected if supports_structured_output(m)]
    if free_only:
        selected = [m for m in selected if is_free(m)]
    return [{key: m.get(key) for key in _SIMPLIFIED_FIELDS} for m in selected]
