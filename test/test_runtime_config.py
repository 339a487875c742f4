import asyncio

import pytest
from pydantic import ValidationError

from linguagen.config import (
    ConfigStore,
    EnvFile,
    OpenRouterSettings,
    ProviderType,
    RuntimeConfig,
    SettingsUpdate,
    apply_update,
)
from linguagen.utils import TaskRegistry


def test_defaults_from_empty_environment():
    config = RuntimeConfig.from_env({})
    assert config.provider is ProviderType.OPENROUTER
    assert config.openrouter.model == "anthropic/claude-3.5-sonnet"
    assert config.ollama.host == "http://127.0.0.1:11434"
    assert config.ollama.model == "qwen2.5:14b"
    assert config.max_output_tokens == 15000


def test_from_env_reads_every_key():
    config = RuntimeConfig.from_env(
        {
            "PROVIDER": "Ollama",
            "OPENROUTER_API_KEY": "sk-1",
            "OPENROUTER_MODEL": "openai/gpt-4o",
            "APP_URL": "http://app.local",
            "OLLAMA_HOST": "http://gpu:11434",
            "OLLAMA_MODEL": "llama3",
            "MAX_TOKENS": "800",
        }
    )
    assert config.provider is ProviderType.OLLAMA
    assert config.active_model == "llama3"
    assert config.openrouter == OpenRouterSettings("sk-1", "openai/gpt-4o", "http://app.local")
    assert config.max_output_tokens == 800


def test_non_positive_token_cap_is_rejected():
    with pytest.raises(ValueError):
        RuntimeConfig(max_output_tokens=0)


def test_redacted_view_never_contains_the_key(runtime_config):
    view = runtime_config.redacted()
    assert view["openrouter"]["hasKey"] is True
    assert "sk-or-test" not in repr(view)
    assert view["maxTokens"] == 1200


def test_partial_update_leaves_other_fields_alone(runtime_config):
    update = SettingsUpdate.model_validate({"provider": "OLLAMA", "ollama": {"model": "llama3"}})
    updated = apply_update(runtime_config, update)
    assert updated.provider is ProviderType.OLLAMA
    assert updated.ollama.model == "llama3"
    assert updated.ollama.host == runtime_config.ollama.host
    assert updated.openrouter == runtime_config.openrouter
    assert updated.max_output_tokens == runtime_config.max_output_tokens
    # the previous snapshot is untouched
    assert runtime_config.provider is ProviderType.OPENROUTER


def test_blank_api_key_does_not_replace_stored_key(runtime_config):
    update = SettingsUpdate.model_validate({"openrouter": {"apiKey": "  ", "model": "openai/gpt-4o"}})
    updated = apply_update(runtime_config, update)
    assert updated.openrouter.api_key == "sk-or-test"
    assert updated.openrouter.model == "openai/gpt-4o"


def test_invalid_update_values_are_rejected():
    with pytest.raises(ValidationError):
        SettingsUpdate.model_validate({"provider": "bedrock"})
    with pytest.raises(ValidationError):
        SettingsUpdate.model_validate({"maxTokens": 0})


def test_store_swaps_snapshot(config_store):
    before = config_store.get()
    after = config_store.update(SettingsUpdate(max_tokens=500))
    assert config_store.get() is after
    assert after.max_output_tokens == 500
    assert before.max_output_tokens == 1200


def test_update_is_persisted_keeping_comments_and_stored_key(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("# provider settings\nOPENROUTER_API_KEY=sk-stored\nUNRELATED=1\n")

    async def scenario():
        tasks = TaskRegistry()
        store = ConfigStore(RuntimeConfig.from_env({}), EnvFile(env_path), tasks)
        store.update(SettingsUpdate.model_validate({"provider": "ollama", "maxTokens": 2048}))
        await tasks.drain(timeout=5)

    asyncio.run(scenario())

    text = env_path.read_text()
    assert "# provider settings" in text
    values = EnvFile(env_path).read()
    assert values["OPENROUTER_API_KEY"] == "sk-stored"
    assert values["PROVIDER"] == "ollama"
    assert values["MAX_TOKENS"] == "2048"
    assert values["OLLAMA_MODEL"] == "qwen2.5:14b"
    assert values["UNRELATED"] == "1"


def test_persisted_file_is_created_when_missing(tmp_path):
    env_path = tmp_path / "nested" / ".env"

    async def scenario():
        tasks = TaskRegistry()
        store = ConfigStore(RuntimeConfig.from_env({}), EnvFile(env_path), tasks)
        store.update(SettingsUpdate.model_validate({"openrouter": {"apiKey": "sk-new"}}))
        await tasks.drain(timeout=5)

    asyncio.run(scenario())
    assert EnvFile(env_path).read()["OPENROUTER_API_KEY"] == "sk-new"


def test_persistence_failure_does_not_fail_the_update(tmp_path):
    # a directory where the file should be makes every write fail
    env_path = tmp_path / "taken"
    env_path.mkdir()

    async def scenario():
        tasks = TaskRegistry()
        store = ConfigStore(RuntimeConfig.from_env({}), EnvFile(env_path), tasks)
        snapshot = store.update(SettingsUpdate(max_tokens=99))
        await tasks.drain(timeout=5)
        return store, snapshot

    store, snapshot = asyncio.run(scenario())
    assert store.get() is snapshot
    assert snapshot.max_output_tokens == 99


def test_drain_cancels_tasks_that_outlive_the_timeout():
    async def scenario():
        tasks = TaskRegistry()
        task = tasks.spawn(asyncio.sleep(60), name="slow")
        await tasks.drain(timeout=0.01)
        return task

    assert asyncio.run(scenario()).cancelled()


def test_rapid_updates_leave_the_file_at_the_latest_snapshot(tmp_path):
    env_path = tmp_path / ".env"

    async def scenario():
        tasks = TaskRegistry()
        store = ConfigStore(RuntimeConfig.from_env({}), EnvFile(env_path), tasks)
        for i in range(20):
            store.update(SettingsUpdate.model_validate({"ollama": {"model": f"m{i}"}}))
        await tasks.drain(timeout=10)
        return store

    for _ in range(5):
        store = asyncio.run(scenario())
        assert store.get().ollama.model == "m19"
        assert EnvFile(env_path).read()["OLLAMA_MODEL"] == "m19"
        assert EnvFile(env_path).read() == {k: v for k, v in store.get().to_env().items() if v}


def test_multiline_values_are_rejected():
    with pytest.raises(ValidationError):
        SettingsUpdate.model_validate({"ollama": {"model": "llama3\nPROVIDER=ollama"}})
    with pytest.raises(ValidationError):
        SettingsUpdate.model_validate({"openrouter": {"appUrl": "http://a\r\n"}})


def test_values_with_hash_and_spaces_survive_persistence(tmp_path):
    env_path = tmp_path / ".env"

    async def scenario():
        tasks = TaskRegistry()
        store = ConfigStore(RuntimeConfig.from_env({}), EnvFile(env_path), tasks)
        store.update(SettingsUpdate.model_validate({"openrouter": {"appUrl": "Language AI #2"}}))
        await tasks.drain(timeout=5)

    asyncio.run(scenario())
    assert EnvFile(env_path).read()["APP_URL"] == "Language AI #2"
