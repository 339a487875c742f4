from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response


llm_requests = Counter(
    "llm_requests_total",
    "Total upstream LLM calls by provider and outcome",
    ["provider", "outcome"],
)

llm_request_latency = Histogram(
    "llm_request_latency_seconds",
    "Latency of upstream LLM calls",
    ["provider"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

llm_tokens = Counter(
    "llm_tokens_total",
    "Total LLM tokens reported by the provider",
    ["provider", "direction"],
)

response_cache_events = Counter(
    "response_cache_events_total",
    "Response cache lookups and stores",
    ["result"],
)

partial_salvage = Counter(
    "partial_salvage_total",
    "Responses answered with items salvaged from truncated JSON",
)

generation_errors = Counter(
    "generation_errors_total",
    "Generation requests that ended in a typed error",
    ["kind"],
)


def metrics_response() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
