from linguagen.config.env_file import EnvFile
from linguagen.config.runtime import (
    ConfigStore,
    OllamaSettings,
    OpenRouterSettings,
    ProviderType,
    RuntimeConfig,
    SettingsUpdate,
    apply_update,
)

__all__ = [
    "ConfigStore",
    "EnvFile",
    "OllamaSettings",
    "OpenRouterSettings",
    "ProviderType",
    "RuntimeConfig",
    "SettingsUpdate",
    "apply_update",
]
