import json
import logging
import os
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from tictactoe_arena import settings

LOGGER = logging.getLogger(__name__)

PromptMode = Literal["verbose", "minimal"]

ReasoningEffort = Literal["minimal", "low", "medium", "high"]


class ConfigError(ValueError):
    pass


class ModelConfig(BaseModel):
    id: str
    name: str | None = None
    api_key: str | None = None
    api_key_env: str = settings.DEFAULT_API_KEY_ENV
    base_url: str | None = None
    mode: PromptMode = "verbose"
    reasoning_effort: ReasoningEffort | None = None
    system_prompt: str | None = None

    @property
    def display_name(self) -> str:
        name = f"{self.name or self.id} ({self.mode})"
        if self.mode == "minimal":
            name += f" [{self.effort}]"
        return name

    @property
    def effort(self) -> str:
        return self.reasoning_effort or settings.DEFAULT_REASONING_EFFORT

    @property
    def key(self) -> str:
        """
        Identifier used for this model in match records and statistics; the
        same model configured with different modes counts as separate players
        """
        key = f"{self.id}-{self.mode}"
        if self.mode == "minimal":
            key += f"-{self.effort}"
        return key

    def resolve_api_key(self) -> str | None:
        if self.api_key:
            return self.api_key
        return os.getenv(self.api_key_env)


class TournamentSettings(BaseModel):
    rounds: int = Field(default=settings.DEFAULT_ROUNDS, ge=1)
    timeout_ms: int = Field(default=settings.DEFAULT_TIMEOUT_MS, gt=0)
    max_tokens: int = Field(default=settings.DEFAULT_MAX_TOKENS, gt=0)
    max_retries: int = Field(default=settings.DEFAULT_MAX_RETRIES, ge=1)
    backoff_base_ms: int = Field(default=settings.DEFAULT_BACKOFF_BASE_MS, ge=0)
    backoff_multiplier: float = Field(
        default=settings.DEFAULT_BACKOFF_MULTIPLIER, ge=1.0
    )


class LoggingSettings(BaseModel):
    matches_dir: str = settings.MATCHES_DIR
    outcomes_file: str = settings.OUTCOMES_FILE
    statistics_file: str = settings.STATISTICS_FILE


class ArenaConfig(BaseModel):
    system_prompt: str | None = None
    models: list[ModelConfig]
    tournament: TournamentSettings = Field(default_factory=TournamentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def system_prompt_for(self, model: ModelConfig) -> str:
        if model.system_prompt:
            return model.system_prompt
        if self.system_prompt:
            return self.system_prompt
        if model.mode == "minimal":
            return settings.MINIMAL_SYSTEM_PROMPT
        return settings.VERBOSE_SYSTEM_PROMPT


def load_config(path: str) -> ArenaConfig:
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError as err:
        raise ConfigError(f"Config file not found: {path}") from err
    except json.JSONDecodeError as err:
        raise ConfigError(f"Config file {path} is not valid JSON: {err}") from err

    try:
        config = ArenaConfig.model_validate(data)
    except ValidationError as err:
        raise ConfigError(f"Invalid config in {path}:\n{err}") from err

    LOGGER.debug("Loaded %d model(s) from %s", len(config.models), path)
    return config


def validate_config(config: ArenaConfig) -> None:
    if len(config.models) < 2:
        raise ConfigError("Configuration must include at least 2 models")

    keys = [model.key for model in config.models]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate model entries: {', '.join(duplicates)}")

    missing = [
        model.key
        for model in config.models
        if (model.resolve_api_key() or "") in settings.PLACEHOLDER_API_KEYS
    ]
    if missing:
        lines = "\n".join(f"   - {key}" for key in missing)
        raise ConfigError(
            f"The following models are missing API keys:\n{lines}\n"
            "Set api_key (or the variable named by api_key_env) for each of them"
        )
