"""
Generation orchestrator -- the single entry point for structured generation.

Flow for one request:
1. Reject an empty user prompt before any network call.
2. For cache-eligible requests, answer from the response cache on a hit.
3. Invoke the active provider (the global token cap always applies).
4. Without a schema, return the normalized text.
5. With a schema, normalize and parse; if parsing fails and the schema
   expects an ``items`` list, salvage the complete items instead.
6. Decode the payload for its shape and store cache-eligible results.
"""

from __future__ import annotations

import logging
from typing import Any

from linguagen.config.runtime import ConfigStore
from linguagen.errors import GenerationError, MalformedOutput, ValidationError
from linguagen.llm_adapter.cache import LRUCache, make_cache_key
from linguagen.llm_adapter.factory import ProviderBuilder
from linguagen.llm_adapter.models import GenerationRequest, ResponseShape, decode_payload
from linguagen.observability.metrics import generation_errors, partial_salvage, response_cache_events
from linguagen.parsing import normalize_response, parse_structured, recover_items

logger = logging.getLogger(__name__)


class GenerationOrchestrator:

    def __init__(
        self,
        config_store: ConfigStore,
        cache: LRUCache,
        provider_factory: ProviderBuilder,
    ) -> None:
        self._config_store = config_store
        self._cache = cache
        self._provider_factory = provider_factory

    @property
    def cache(self) -> LRUCache:
        return self._cache

    async def generate(self, request: GenerationRequest) -> Any:
        try:
            return await self._generate(request)
        except GenerationError as exc:
            generation_errors.labels(kind=exc.kind).inc()
            raise

    async def _generate(self, request: GenerationRequest) -> Any:
        if not request.user_prompt or not request.user_prompt.strip():
            raise ValidationError("User prompt is required")

        # One snapshot per request: provider, model and cache key stay consistent.
        config = self._config_store.get()
        shape = ResponseShape.of(request)

        cache_key = make_cache_key(request, config.active_model)
        if cache_key is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                response_cache_events.labels(result="hit").inc()
                logger.info("Cache HIT for %s", cache_key)
                return cached
            response_cache_events.labels(result="miss").inc()

        provider = self._provider_factory(config)
        raw = await provider.invoke(
            user_prompt=request.user_prompt,
            system_prompt=request.system_prompt,
            max_tokens=request.max_tokens,
            response_schema=request.response_schema,
            schema_name=request.schema_name,
        )

        text = normalize_response(raw)
        if request.response_schema is None:
            return text

        try:
            parsed = parse_structured(text)
        except MalformedOutput as exc:
            if shape is ResponseShape.ITEM_LIST:
                recovered = recover_items(text)
                if recovered is not None:
                    partial_salvage.inc()
                    logger.warning(
                        "Returning %d salvaged items from truncated JSON",
                        len(recovered["items"]),
                        extra={"_extra": {"schema_name": request.schema_name}},
                    )
                    return recovered
            logger.error("Unparseable model output: %s | preview=%s", exc.detail, exc.preview[:200])
            raise

        payload = decode_payload(shape, parsed)

        if cache_key is not None and payload is not None:
            self._cache.set(cache_key, payload)
            response_cache_events.labels(result="store").inc()
            logger.info(
                "Cache SET for %s (size %d/%d)",
                cache_key,
                len(self._cache),
                self._cache.capacity,
            )
        return payload
