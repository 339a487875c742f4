import pytest

from linguagen.llm_adapter import GenerationRequest, LRUCache, extract_topic, make_cache_key


def test_least_recently_used_entry_is_evicted():
    cache = LRUCache(capacity=2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1  # a is now most recent
    cache.set("c", 3)
    assert "b" not in cache
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_overwriting_existing_key_does_not_evict():
    cache = LRUCache(capacity=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert len(cache) == 2
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_missing_key_returns_none():
    assert LRUCache(capacity=3).get("nope") is None


def test_stats_report_utilization():
    cache = LRUCache(capacity=4)
    cache.set("a", 1)
    assert cache.stats() == {"size": 1, "capacity": 4, "utilizationPercent": 25}
    cache.clear()
    assert cache.stats()["size"] == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        LRUCache(capacity=0)


def test_topic_is_read_up_to_the_first_period():
    assert extract_topic("Explain the grammar concept: Ser vs Estar. Use examples.") == "Ser vs Estar"
    assert extract_topic("explain the grammar concept:   subjunctive mood") == "subjunctive mood"
    assert extract_topic("Give me ten exercises") is None


def test_cache_key_combines_topic_and_model():
    request = GenerationRequest(
        user_prompt="Explain the grammar concept: Preterite. Be brief.",
        schema_name="explanation",
    )
    assert make_cache_key(request, "qwen2.5:14b") == "Preterite:qwen2.5:14b"
    assert make_cache_key(request, "anthropic/claude-3.5-sonnet") != make_cache_key(request, "qwen2.5:14b")


def test_only_explanations_are_cacheable():
    prompt = "Explain the grammar concept: Preterite."
    assert make_cache_key(GenerationRequest(user_prompt=prompt, schema_name="exercises"), "m") is None
    assert make_cache_key(GenerationRequest(user_prompt=prompt), "m") is None
    assert make_cache_key(GenerationRequest(user_prompt="Tell me a story", schema_name="explanation"), "m") is None
