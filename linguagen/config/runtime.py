"""
Runtime provider configuration.

A ``RuntimeConfig`` is an immutable snapshot. ``ConfigStore`` owns the
current snapshot and is the only place it changes: ``update`` builds a new
snapshot, swaps it in with one assignment and schedules its persistence.
Readers holding an older snapshot keep a consistent view without locks.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from linguagen.config.env_file import EnvFile
from linguagen.utils.tasks import TaskRegistry

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


DEFAULT_OPENROUTER_MODEL = "anthropic/claude-3.5-sonnet"
DEFAULT_OLLAMA_MODEL = "qwen2.5:14b"
DEFAULT_OLLAMA_HOST = "http://127.0.0.1:11434"
DEFAULT_APP_URL = "Language AI App"
DEFAULT_MAX_TOKENS = 15000


@dataclass(frozen=True)
class OpenRouterSettings:
    api_key: str = ""
    model: str = DEFAULT_OPENROUTER_MODEL
    app_url: str = DEFAULT_APP_URL


@dataclass(frozen=True)
class OllamaSettings:
    host: str = DEFAULT_OLLAMA_HOST
    model: str = DEFAULT_OLLAMA_MODEL


@dataclass(frozen=True)
class RuntimeConfig:
    provider: ProviderType = ProviderType.OPENROUTER
    openrouter: OpenRouterSettings = field(default_factory=OpenRouterSettings)
    ollama: OllamaSettings = field(default_factory=OllamaSettings)
    max_output_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self) -> None:
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        env = os.environ if environ is None else environ
        return cls(
            provider=ProviderType(env.get("PROVIDER", "openrouter").strip().lower()),
            openrouter=OpenRouterSettings(
                api_key=env.get("OPENROUTER_API_KEY", ""),
                model=env.get("OPENROUTER_MODEL") or DEFAULT_OPENROUTER_MODEL,
                app_url=env.get("APP_URL") or DEFAULT_APP_URL,
            ),
            ollama=OllamaSettings(
                host=env.get("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST,
                model=env.get("OLLAMA_MODEL") or DEFAULT_OLLAMA_MODEL,
            ),
            max_output_tokens=int(env.get("MAX_TOKENS") or DEFAULT_MAX_TOKENS),
        )

    @property
    def active_model(self) -> str:
        if self.provider is ProviderType.OLLAMA:
            return self.ollama.model
        return self.openrouter.model

    def redacted(self) -> dict[str, Any]:
        """Externally visible projection; the API key is reduced to a flag."""
        return {
            "provider": self.provider.value,
            "openrouter": {
                "model": self.openrouter.model,
                "hasKey": bool(self.openrouter.api_key),
                "appUrl": self.openrouter.app_url,
            },
            "ollama": {
                "model": self.ollama.model,
                "host": self.ollama.host,
            },
            "maxTokens": self.max_output_tokens,
        }

    def to_env(self) -> dict[str, str]:
        return {
            "PROVIDER": self.provider.value,
            "OPENROUTER_API_KEY": self.openrouter.api_key,
            "OPENROUTER_MODEL": self.openrouter.model,
            "APP_URL": self.openrouter.app_url,
            "OLLAMA_HOST": self.ollama.host,
            "OLLAMA_MODEL": self.ollama.model,
            "MAX_TOKENS": str(self.max_output_tokens),
        }


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------


def _single_line(value: str | None) -> str | None:
    # Values end up as one KEY=VALUE line in the env file.
    if value is not None and any(ord(ch) < 32 for ch in value):
        raise ValueError("must be a single line without control characters")
    return value


class OpenRouterUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(default=None, alias="apiKey")
    model: str | None = None
    app_url: str | None = Field(default=None, alias="appUrl")

    @field_validator("api_key", "model", "app_url")
    @classmethod
    def _check_single_line(cls, value: str | None) -> str | None:
        return _single_line(value)


class OllamaUpdate(BaseModel):
    host: str | None = None
    model: str | None = None

    @field_validator("host", "model")
    @classmethod
    def _check_single_line(cls, value: str | None) -> str | None:
        return _single_line(value)


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: ProviderType | None = None
    openrouter: OpenRouterUpdate | None = None
    ollama: OllamaUpdate | None = None
    max_tokens: int | None = Field(default=None, gt=0, alias="maxTokens")

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


def apply_update(config: RuntimeConfig, update: SettingsUpdate) -> RuntimeConfig:
    """Return a new snapshot with only the fields present in ``update`` applied."""
    openrouter = config.openrouter
    if update.openrouter is not None:
        changes: dict[str, str] = {}
        # A blank key never replaces a stored one.
        if update.openrouter.api_key and update.openrouter.api_key.strip():
            changes["api_key"] = update.openrouter.api_key
        if update.openrouter.model is not None:
            changes["model"] = update.openrouter.model
        if update.openrouter.app_url is not None:
            changes["app_url"] = update.openrouter.app_url
        openrouter = dataclasses.replace(openrouter, **changes)

    ollama = config.ollama
    if update.ollama is not None:
        changes = {}
        if update.ollama.host is not None:
            changes["host"] = update.ollama.host
        if update.ollama.model is not None:
            changes["model"] = update.ollama.model
        ollama = dataclasses.replace(ollama, **changes)

    return dataclasses.replace(
        config,
        provider=update.provider or config.provider,
        openrouter=openrouter,
        ollama=ollama,
        max_output_tokens=update.max_tokens or config.max_output_tokens,
    )


class ConfigStore:
    """Holds the process-wide RuntimeConfig snapshot."""

    def __init__(
        self,
        initial: RuntimeConfig,
        env_file: EnvFile | None = None,
        tasks: TaskRegistry | None = None,
    ) -> None:
        self._current = initial
        self._env_file = env_file
        self._tasks = tasks
        self._persist_lock = asyncio.Lock()

    def get(self) -> RuntimeConfig:
        return self._current

    def redacted(self) -> dict[str, Any]:
        return self._current.redacted()

    def update(self, update: SettingsUpdate) -> RuntimeConfig:
        """Apply ``update`` and schedule persistence without awaiting it."""
        snapshot = apply_update(self._current, update)
        self._current = snapshot
        logger.info(
            "Runtime config updated: provider=%s model=%s",
            snapshot.provider.value,
            snapshot.active_model,
        )
        if self._env_file is not None and self._tasks is not None:
            self._tasks.spawn(self._persist(), name="persist-config")
        return snapshot

    async def _persist(self) -> None:
        # Writes are serialized and each one writes the snapshot current when
        # it acquires the lock, so the file ends at the latest update.
        try:
            async with self._persist_lock:
                await self._env_file.merge_async(
                    self._current.to_env(),
                    keep_existing=("OPENROUTER_API_KEY",),
                )
            logger.info("Persisted runtime config to %s", self._env_file.path)
        except Exception as exc:
            logger.warning("Failed to persist runtime config: %s", exc)
