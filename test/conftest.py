import json

import httpx
import pytest

from linguagen.config import ConfigStore, OllamaSettings, OpenRouterSettings, ProviderType, RuntimeConfig
from linguagen.llm_adapter import LRUCache
from linguagen.orchestrator import GenerationOrchestrator


class FakeProvider:
    """Stands in for an LLMProvider; returns canned texts in order."""

    def __init__(self, *responses: str):
        self._responses = list(responses)
        self.calls = []

    async def invoke(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


@pytest.fixture
def fake_provider_factory():
    def _make(*responses: str):
        return FakeProvider(*responses)
    return _make


@pytest.fixture
def runtime_config():
    return RuntimeConfig(
        provider=ProviderType.OPENROUTER,
        openrouter=OpenRouterSettings(api_key="sk-or-test", model="anthropic/claude-3.5-sonnet"),
        ollama=OllamaSettings(host="http://ollama.local:11434", model="qwen2.5:14b"),
        max_output_tokens=1200,
    )


@pytest.fixture
def config_store(runtime_config):
    return ConfigStore(runtime_config)


@pytest.fixture
def make_orchestrator(config_store):
    def _make(provider, capacity: int = 1000):
        return GenerationOrchestrator(config_store, LRUCache(capacity), lambda cfg: provider)
    return _make


class RecordingTransport:
    """Routes requests to a handler and keeps every request it saw."""

    def __init__(self, handler):
        self._handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def bodies(self, path: str) -> list:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]

    def paths(self) -> list:
        return [r.url.path for r in self.requests]


@pytest.fixture
def recording_client():
    """Build an httpx.AsyncClient whose requests go to ``handler``."""
    def _make(handler):
        transport = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return client, transport
    return _make
