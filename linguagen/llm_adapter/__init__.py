from linguagen.llm_adapter.base import LLMProvider
from linguagen.llm_adapter.cache import LRUCache, extract_topic, make_cache_key
from linguagen.llm_adapter.factory import ProviderFactory
from linguagen.llm_adapter.model_catalog import ModelsCache, fetch_openrouter_models, filter_models
from linguagen.llm_adapter.models import GenerationRequest, ResponseShape, decode_payload
from linguagen.llm_adapter.ollama_provider import OllamaProvider, list_local_models
from linguagen.llm_adapter.openrouter_provider import OpenRouterProvider, fetch_key_info

__all__ = [
    "LLMProvider",
    "LRUCache",
    "GenerationRequest",
    "ModelsCache",
    "OllamaProvider",
    "OpenRouterProvider",
    "ProviderFactory",
    "ResponseShape",
    "decode_payload",
    "extract_topic",
    "fetch_key_info",
    "fetch_openrouter_models",
    "filter_models",
    "list_local_models",
    "make_cache_key",
]
