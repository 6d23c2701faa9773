"""
Tests for assistant configuration.

Verifies:
- Defaults when nothing is set
- Environment overrides
- Tolerant numeric parsing
"""
from pathlib import Path

import pytest

from query_pipeline import config as config_module
from query_pipeline.config import AssistantConfig, DEFAULT_COMPLETION_ENDPOINT, load_env_files


ENV_VARS = (
    "ASSISTANT_LOCALE",
    "KNOWLEDGE_PATH",
    "CREDENTIAL_PATH",
    "COMPLETION_ENDPOINT",
    "COMPLETION_MODEL",
    "COMPLETION_MAX_TOKENS",
    "COMPLETION_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "SERVER_HOST",
    "SERVER_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_config_defaults():
    config = AssistantConfig.from_env()

    assert config.locale == "hu"
    assert config.knowledge_path == Path("knowledge.json")
    assert config.completion_endpoint == DEFAULT_COMPLETION_ENDPOINT
    assert config.completion_model == "gpt-4o-mini"
    assert config.completion_max_tokens == 200
    assert config.completion_timeout_seconds == 30.0
    assert config.server_port == 8000


def test_config_from_env_all_fields(monkeypatch):
    monkeypatch.setenv("ASSISTANT_LOCALE", " EN ")
    monkeypatch.setenv("KNOWLEDGE_PATH", "/data/kb.yaml")
    monkeypatch.setenv("CREDENTIAL_PATH", "/data/token.json")
    monkeypatch.setenv("COMPLETION_ENDPOINT", "https://llm.example/v1/chat/completions")
    monkeypatch.setenv("COMPLETION_MODEL", "gpt-4o")
    monkeypatch.setenv("COMPLETION_MAX_TOKENS", "150")
    monkeypatch.setenv("COMPLETION_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("SERVER_PORT", "9001")

    config = AssistantConfig.from_env()

    assert config.locale == "en"
    assert config.knowledge_path == Path("/data/kb.yaml")
    assert config.credential_path == Path("/data/token.json")
    assert config.completion_endpoint == "https://llm.example/v1/chat/completions"
    assert config.completion_model == "gpt-4o"
    assert config.completion_max_tokens == 150
    assert config.completion_timeout_seconds == 12.5
    assert config.server_port == 9001


def test_numeric_values_strip_comments(monkeypatch):
    monkeypatch.setenv("COMPLETION_MAX_TOKENS", "120  # keep answers short")

    assert AssistantConfig.from_env().completion_max_tokens == 120


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("COMPLETION_MAX_TOKENS", "lots")
    monkeypatch.setenv("COMPLETION_TIMEOUT_SECONDS", "")

    config = AssistantConfig.from_env()
    assert config.completion_max_tokens == 200
    assert config.completion_timeout_seconds == 30.0


def test_temperature_is_not_configurable():
    assert not hasattr(AssistantConfig(), "completion_temperature")


def test_load_env_files_does_not_override(tmp_path, monkeypatch):
    (tmp_path / ".env_local").write_text("COMPLETION_MODEL=from-file\nSERVER_HOST=0.0.0.0\n")
    monkeypatch.setenv("COMPLETION_MODEL", "from-env")

    load_env_files(tmp_path)

    config = AssistantConfig.from_env()
    assert config.completion_model == "from-env"
    assert config.server_host == "0.0.0.0"


def test_get_config_is_cached(monkeypatch):
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(config_module, "load_env_files", lambda root=None: None)

    first = config_module.get_config()
    assert config_module.get_config() is first
