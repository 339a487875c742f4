"""
Response caching layer.

A bounded least-recently-used cache for parsed generation results. Only
explanation requests take part: their key is the grammar topic named in
the prompt plus the active model, so switching provider or model simply
stops matching old entries.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Any

from linguagen.llm_adapter.models import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000

CACHEABLE_SCHEMAS = frozenset({"explanation"})

_TOPIC_PATTERN = re.compile(r"Explain the grammar concept:\s*([^.]+)", re.IGNORECASE)


class LRUCache:
    """Strict LRU over an OrderedDict; the first entry is the least recent."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: OrderedDict[str, Any] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Any | None:
        """Return the value and mark it most recently used, or None."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted LRU cache entry %s", evicted)
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        size = len(self._entries)
        return {
            "size": size,
            "capacity": self.capacity,
            "utilizationPercent": round(size / self.capacity * 100),
        }


def extract_topic(user_prompt: str) -> str | None:
    match = _TOPIC_PATTERN.search(user_prompt or "")
    if match is None:
        return None
    topic = match.group(1).strip()
    return topic or None


def make_cache_key(request: GenerationRequest, model: str) -> str | None:
    """Cache key for ``request`` under ``model``, or None if not cache-eligible."""
    if request.schema_name not in CACHEABLE_SCHEMAS:
        return None
    topic = extract_topic(request.user_prompt)
    if topic is None:
        return None
    return f"{topic}:{model}"
