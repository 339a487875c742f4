"""Abstract base class that all LLM providers must implement."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from linguagen.config.runtime import ProviderType, RuntimeConfig
from linguagen.errors import GenerationError, UpstreamError
from linguagen.observability.metrics import llm_request_latency, llm_requests
from linguagen.utils.tasks import TaskRegistry

logger = logging.getLogger(__name__)

Message = dict[str, str]


def json_object(resp: httpx.Response, provider: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamError(provider, resp.status_code, "invalid response body") from exc
    if not isinstance(data, dict):
        raise UpstreamError(provider, resp.status_code, "invalid response body")
    return data


class LLMProvider(ABC):
    """
    Contract for LLM providers.

    A provider is bound to one RuntimeConfig snapshot. Every implementation
    receives the global token cap from ``invoke``, never the caller's value,
    and must raise only GenerationError subclasses.
    """

    name: ClassVar[ProviderType]

    def __init__(
        self,
        config: RuntimeConfig,
        http_client: httpx.AsyncClient,
        tasks: TaskRegistry | None = None,
    ) -> None:
        self._config = config
        self._http = http_client
        self._tasks = tasks

    @property
    def model(self) -> str:
        return self._config.active_model

    async def invoke(
        self,
        *,
        user_prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        response_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        """Send the prompt pair and return the raw completion text."""
        cap = self._config.max_output_tokens
        if max_tokens is not None and max_tokens != cap:
            logger.debug("Overriding requested max_tokens=%s with cap %d", max_tokens, cap)

        preview = " ".join(user_prompt[:160].split())
        logger.info(
            "[LLM %s] model=%s maxTokens=%d structured=%s prompt=\"%s...\"",
            self.name.value,
            self.model,
            cap,
            "yes" if response_schema else "no",
            preview,
        )

        started = time.monotonic()
        try:
            text = await self._complete(
                messages=self._messages(system_prompt, user_prompt),
                max_tokens=cap,
                response_schema=response_schema,
                schema_name=schema_name,
            )
        except GenerationError as exc:
            llm_requests.labels(provider=self.name.value, outcome=exc.kind).inc()
            raise
        elapsed = time.monotonic() - started
        llm_requests.labels(provider=self.name.value, outcome="ok").inc()
        llm_request_latency.labels(provider=self.name.value).observe(elapsed)
        logger.info("[LLM %s] ok in %dms", self.name.value, int(elapsed * 1000))
        return text

    @staticmethod
    def _messages(system_prompt: str | None, user_prompt: str) -> list[Message]:
        messages: list[Message] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    @abstractmethod
    async def _complete(
        self,
        *,
        messages: list[Message],
        max_tokens: int,
        response_schema: dict[str, Any] | None,
        schema_name: str | None,
    ) -> str:
        """Provider-specific request; returns the completion text."""
