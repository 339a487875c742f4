"""
Generation Service -- HTTP boundary for the language-learning front-end.

Responsibilities:
1. POST /api/generate  -- structured generation (prompt + optional JSON schema)
2. POST /api/explain   -- explain an exercise mistake
3. POST /api/recommend -- recommend the next practice topic
4. GET/POST /api/settings -- read (redacted) / update provider settings
5. GET /api/ollama/models, /api/openrouter/models, /api/openrouter/rate-limit
   -- read-only helpers for the settings screen
6. GET /api/cache/stats -- explanation cache utilisation

Every pipeline failure is caught here and returned as
``{"error": <kind>, "details": <detail>, "provider": <active provider>}``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linguagen.config import ConfigStore, EnvFile, RuntimeConfig, SettingsUpdate
from linguagen.errors import ConfigurationError, GenerationError, ValidationError
from linguagen.llm_adapter import (
    GenerationRequest,
    LRUCache,
    ModelsCache,
    ProviderFactory,
    fetch_key_info,
    fetch_openrouter_models,
    filter_models,
    list_local_models,
)
from linguagen.logging.logger import setup_logging
from linguagen.observability.metrics import metrics_response
from linguagen.orchestrator import GenerationOrchestrator
from linguagen.utils.tasks import TaskRegistry
from services.generation_service.config import GenerationServiceConfig
from services.generation_service.prompts import (
    EXPLAIN_SCHEMA,
    EXPLAIN_SYSTEM,
    RECOMMEND_SCHEMA,
    RECOMMEND_SYSTEM,
    ExplainRequest,
    RecommendRequest,
    build_explain_prompt,
    build_recommend_prompt,
)

SERVICE_NAME = "generation_service"
cfg: GenerationServiceConfig | None = None
config_store: ConfigStore | None = None
orchestrator: GenerationOrchestrator | None = None
http_client: httpx.AsyncClient | None = None
tasks: TaskRegistry | None = None
models_cache: ModelsCache | None = None


@asynccontextmanager
async def lifespan(application: FastAPI):
    global cfg, config_store, orchestrator, http_client, tasks, models_cache
    load_dotenv(os.environ.get("ENV_FILE", ".env"))
    cfg = GenerationServiceConfig.from_env()
    logger = setup_logging(SERVICE_NAME, cfg.log_level)

    tasks = TaskRegistry()
    timeout = cfg.request_timeout if cfg.request_timeout > 0 else None
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    config_store = ConfigStore(
        RuntimeConfig.from_env(),
        env_file=EnvFile(cfg.env_file),
        tasks=tasks,
    )
    orchestrator = GenerationOrchestrator(
        config_store,
        LRUCache(cfg.explanation_cache_capacity),
        ProviderFactory(http_client, tasks, cost_lookup_delay=cfg.cost_lookup_delay),
    )
    models_cache = ModelsCache()

    current = config_store.get()
    logger.info(
        "Generation Service ready (provider=%s, model=%s)",
        current.provider.value,
        current.active_model,
    )
    yield

    logger.info("Shutting down")
    await tasks.drain(timeout=cfg.shutdown_drain_timeout or None)
    await http_client.aclose()


app = FastAPI(
    title="Language AI - Generation Service",
    version="0.1.0",
    description="Resilient structured generation over OpenRouter and Ollama",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(SERVICE_NAME)


def _get_orchestrator() -> GenerationOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return orchestrator


def _get_config_store() -> ConfigStore:
    if config_store is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return config_store


def _active_provider() -> str | None:
    return config_store.get().provider.value if config_store else None


def _error_response(exc: GenerationError) -> JSONResponse:
    body = exc.to_dict()
    body["provider"] = _active_provider()
    return JSONResponse(content=body, status_code=exc.status_code)


def _internal_error(exc: Exception) -> JSONResponse:
    return JSONResponse(
        content={"error": "internal_error", "details": str(exc), "provider": _active_provider()},
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Health & metrics
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "provider": _active_provider(),
        "background_tasks": len(tasks) if tasks is not None else 0,
    }


@app.get("/metrics")
async def metrics():
    return metrics_response()


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@app.post("/api/generate")
async def generate(body: GenerationRequest):
    """Generic generation: parsed payload when a schema is given, else ``{"text": ...}``."""
    try:
        result = await _get_orchestrator().generate(body)
    except GenerationError as exc:
        logger.warning("Generation failed: %s (%s)", exc.kind, exc.detail)
        return _error_response(exc)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Generation failed unexpectedly")
        return _internal_error(exc)

    if isinstance(result, str):
        return {"text": result}
    return JSONResponse(content=result)


@app.post("/api/explain")
async def explain(body: ExplainRequest):
    try:
        if body.exercise is None or not body.exercise.sentence:
            raise ValidationError("exercise is required")
        result = await _get_orchestrator().generate(
            GenerationRequest(
                system_prompt=EXPLAIN_SYSTEM,
                user_prompt=build_explain_prompt(body),
                response_schema=EXPLAIN_SCHEMA,
                schema_name="explanation",
            )
        )
    except GenerationError as exc:
        logger.warning("Explanation failed: %s (%s)", exc.kind, exc.detail)
        return _error_response(exc)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Explanation failed unexpectedly")
        return _internal_error(exc)

    if isinstance(result, dict):
        return {"explanation": result.get("explanation")}
    return {"explanation": result}


@app.post("/api/recommend")
async def recommend(body: RecommendRequest):
    try:
        result = await _get_orchestrator().generate(
            GenerationRequest(
                system_prompt=RECOMMEND_SYSTEM,
                user_prompt=build_recommend_prompt(body),
                response_schema=RECOMMEND_SCHEMA,
                schema_name="recommendation",
            )
        )
    except GenerationError as exc:
        logger.warning("Recommendation failed: %s (%s)", exc.kind, exc.detail)
        return _error_response(exc)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Recommendation failed unexpectedly")
        return _internal_error(exc)
    return JSONResponse(content=result)


@app.get("/api/cache/stats")
async def cache_stats():
    return _get_orchestrator().cache.stats()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@app.get("/api/settings")
async def get_settings():
    return _get_config_store().redacted()


@app.post("/api/settings")
async def update_settings(body: SettingsUpdate):
    """Apply a partial update. Persistence to the env file runs in the background."""
    snapshot = _get_config_store().update(body)
    logger.info("Updated provider to %s", snapshot.provider.value)
    return {"ok": True, "settings": snapshot.redacted()}


# ---------------------------------------------------------------------------
# Provider helpers
# ---------------------------------------------------------------------------

@app.get("/api/ollama/models")
async def ollama_models():
    host = _get_config_store().get().ollama.host
    try:
        models = await list_local_models(http_client, host)
    except GenerationError as exc:
        logger.error("Failed to list Ollama models: %s", exc.detail)
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Failed to list Ollama models")
        return _internal_error(exc)
    return {"host": host, "models": models}


@app.get("/api/openrouter/models")
async def openrouter_models(structured_only: bool = False, free_only: bool = False):
    api_key = _get_config_store().get().openrouter.api_key

    async def _fetch() -> list[dict[str, Any]]:
        return await fetch_openrouter_models(http_client, api_key)

    try:
        if not api_key:
            raise ConfigurationError("Missing OPENROUTER_API_KEY")
        models = await models_cache.get(_fetch)
    except GenerationError as exc:
        logger.error("Failed to list OpenRouter models: %s", exc.detail)
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Failed to list OpenRouter models")
        return _internal_error(exc)
    return {
        "models": filter_models(models, structured_only=structured_only, free_only=free_only),
        "cached_at": models_cache.last_fetched_at,
    }


@app.get("/api/openrouter/rate-limit")
async def openrouter_rate_limit():
    api_key = _get_config_store().get().openrouter.api_key
    try:
        return await fetch_key_info(http_client, api_key)
    except GenerationError as exc:
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Rate-limit lookup failed")
        return _internal_error(exc)
