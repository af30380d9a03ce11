"""
Tests for configuration loading and validation.
"""

import json

import pytest

from tictactoe_arena import settings
from tictactoe_arena.config import (
    ArenaConfig,
    ConfigError,
    ModelConfig,
    load_config,
    validate_config,
)


def write_config(tmp_path, data) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return str(path)


def two_models(**overrides):
    return {
        "models": [
            {"id": "gpt-4o", "api_key": "sk-real-1", **overrides},
            {"id": "o3", "api_key": "sk-real-2", "mode": "minimal"},
        ]
    }


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, two_models()))

        assert config.tournament.max_retries == settings.DEFAULT_MAX_RETRIES
        assert config.tournament.backoff_multiplier == 2.0
        assert config.logging.outcomes_file == settings.OUTCOMES_FILE
        assert config.models[0].mode == "verbose"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "nope.json"))

    def test_bad_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_config(str(path))

    def test_schema_errors(self, tmp_path):
        data = two_models(mode="chatty")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(write_config(tmp_path, data))


class TestValidateConfig:
    def test_valid(self):
        validate_config(ArenaConfig.model_validate(two_models()))

    def test_needs_two_models(self):
        config = ArenaConfig.model_validate(
            {"models": [{"id": "gpt-4o", "api_key": "sk-real"}]}
        )
        with pytest.raises(ConfigError, match="at least 2 models"):
            validate_config(config)

    def test_placeholder_key(self):
        config = ArenaConfig.model_validate(
            two_models(api_key="your-openai-api-key-here")
        )
        with pytest.raises(ConfigError, match="gpt-4o-verbose"):
            validate_config(config)

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ARENA_TEST_KEY", "sk-from-env")
        config = ArenaConfig.model_validate(
            two_models(api_key=None, api_key_env="ARENA_TEST_KEY")
        )
        validate_config(config)
        assert config.models[0].resolve_api_key() == "sk-from-env"

    def test_missing_environment_key(self, monkeypatch):
        monkeypatch.delenv("ARENA_TEST_KEY", raising=False)
        config = ArenaConfig.model_validate(
            two_models(api_key=None, api_key_env="ARENA_TEST_KEY")
        )
        with pytest.raises(ConfigError, match="missing API keys"):
            validate_config(config)

    def test_duplicate_models(self):
        config = ArenaConfig.model_validate(
            {
                "models": [
                    {"id": "gpt-4o", "api_key": "sk-1"},
                    {"id": "gpt-4o", "api_key": "sk-2"},
                ]
            }
        )
        with pytest.raises(ConfigError, match="Duplicate"):
            validate_config(config)


class TestModelConfig:
    def test_keys_distinguish_modes(self):
        verbose = ModelConfig(id="gpt-5")
        minimal = ModelConfig(id="gpt-5", mode="minimal", reasoning_effort="high")

        assert verbose.key == "gpt-5-verbose"
        assert minimal.key == "gpt-5-minimal-high"
        assert ModelConfig(id="gpt-5", mode="minimal").key == "gpt-5-minimal-medium"
        assert minimal.display_name == "gpt-5 (minimal) [high]"

    def test_system_prompt_precedence(self):
        config = ArenaConfig.model_validate(two_models())
        verbose, minimal = config.models

        assert config.system_prompt_for(verbose) == settings.VERBOSE_SYSTEM_PROMPT
        assert config.system_prompt_for(minimal) == settings.MINIMAL_SYSTEM_PROMPT

        config.system_prompt = "Shared prompt"
        assert config.system_prompt_for(minimal) == "Shared prompt"

        minimal.system_prompt = "Own prompt"
        assert config.system_prompt_for(minimal) == "Own prompt"
