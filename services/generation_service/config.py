from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationServiceConfig:
    env_file: str
    log_level: str
    explanation_cache_capacity: int
    request_timeout: float
    cost_lookup_delay: float
    shutdown_drain_timeout: float

    @classmethod
    def from_env(cls) -> GenerationServiceConfig:
        return cls(
            env_file=os.environ.get("ENV_FILE", ".env"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            explanation_cache_capacity=int(os.environ.get("EXPLANATION_CACHE_CAPACITY", "1000")),
            # 0 disables the timeout: an upstream call may wait indefinitely.
            request_timeout=float(os.environ.get("LLM_REQUEST_TIMEOUT", "0") or 0),
            cost_lookup_delay=float(os.environ.get("COST_LOOKUP_DELAY", "0.5") or 0),
            shutdown_drain_timeout=float(os.environ.get("SHUTDOWN_DRAIN_TIMEOUT", "5") or 0),
        )
