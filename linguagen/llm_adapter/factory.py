"""
Provider factory -- maps the active provider to its implementation.

Supported providers:

  openrouter  OpenRouter model router -- needs OPENROUTER_API_KEY
              https://openrouter.ai/keys
              Default model: anthropic/claude-3.5-sonnet
  ollama      Local Ollama server (no key required)
              Default host: http://127.0.0.1:11434
              Default model: qwen2.5:14b

Adding a provider means adding one LLMProvider subclass and one
registry entry; call sites only ever see ``invoke``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from linguagen.config.runtime import ProviderType, RuntimeConfig
from linguagen.errors import ConfigurationError
from linguagen.llm_adapter.base import LLMProvider
from linguagen.llm_adapter.ollama_provider import OllamaProvider
from linguagen.llm_adapter.openrouter_provider import OpenRouterProvider
from linguagen.utils.tasks import TaskRegistry

logger = logging.getLogger(__name__)

ProviderBuilder = Callable[[RuntimeConfig], LLMProvider]


class ProviderFactory:
    """Builds the provider for a config snapshot, sharing one HTTP client."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tasks: TaskRegistry | None = None,
        cost_lookup_delay: float = 0.5,
    ) -> None:
        self._builders: dict[ProviderType, ProviderBuilder] = {
            ProviderType.OPENROUTER: lambda cfg: OpenRouterProvider(
                cfg, http_client, tasks, cost_lookup_delay=cost_lookup_delay
            ),
            ProviderType.OLLAMA: lambda cfg: OllamaProvider(cfg, http_client, tasks),
        }

    def register(self, provider: ProviderType, builder: ProviderBuilder) -> None:
        self._builders[provider] = builder

    def __call__(self, config: RuntimeConfig) -> LLMProvider:
        builder = self._builders.get(config.provider)
        if builder is None:
            raise ConfigurationError(
                f"Unsupported provider '{config.provider.value}'. "
                f"Available: {', '.join(p.value for p in self._builders)}"
            )
        return builder(config)
