"""Run configuration.

Settings are read once at startup into an immutable ``Settings`` object and
handed to the generator and runner. Nothing below the CLI touches the
environment directly.

Environment variables (a ``.env`` file in the working directory is loaded
first):

    OPENROUTER_API_KEY    required
    OPENROUTER_BASE_URL   API root, default https://openrouter.ai/api/v1
    OWAAT_END_MARKER      let participants finish with "THE END."
    OWAAT_VERBOSE         debug logging
    OWAAT_HUMAN           add a human participant to the roster
    OWAAT_SHUFFLE         shuffle the roster before the first turn
    OWAAT_INITIAL_TEXT    text the story starts from
    OWAAT_DELAY_MS        pause between model turns, milliseconds
    OWAAT_MAX_WORDS       word cap (default 30, or 100 with a human)
    OWAAT_MODELS          "Name=vendor/model,..." roster override
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_DELAY_MS = 800
DEFAULT_MAX_WORDS = 30
DEFAULT_MAX_WORDS_WITH_HUMAN = 100

_BOOL = TypeAdapter(bool)

_ENV_FIELDS: dict[str, str] = {
    "OPENROUTER_API_KEY": "api_key",
    "OPENROUTER_BASE_URL": "base_url",
    "OWAAT_END_MARKER": "end_marker",
    "OWAAT_VERBOSE": "verbose",
    "OWAAT_HUMAN": "human",
    "OWAAT_SHUFFLE": "shuffle",
    "OWAAT_INITIAL_TEXT": "initial_text",
    "OWAAT_DELAY_MS": "delay_ms",
    "OWAAT_MAX_WORDS": "max_words",
    "OWAAT_MODELS": "models",
}


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1)
    base_url: str = DEFAULT_BASE_URL
    end_marker: bool = False
    verbose: bool = False
    human: bool = False
    shuffle: bool = False
    initial_text: str = ""
    delay_ms: int = Field(default=DEFAULT_DELAY_MS, ge=0)
    max_words: int = Field(default=DEFAULT_MAX_WORDS, ge=1)
    models: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_max_words(cls, data: Any) -> Any:
        # The cap depends on whether a human is playing.
        if not isinstance(data, dict) or data.get("max_words") is not None:
            return data
        try:
            human = _BOOL.validate_python(data.get("human", False))
        except ValidationError:
            return data  # reported by field validation
        cap = DEFAULT_MAX_WORDS_WITH_HUMAN if human else DEFAULT_MAX_WORDS
        return {**data, "max_words": cap}

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


def load_settings(env: Mapping[str, str] | None = None, **overrides: Any) -> Settings:
    """Build Settings from environment variables plus explicit overrides.

    When ``env`` is None, ``.env`` is loaded and ``os.environ`` is used.
    Empty variables count as unset. Overrides that are None are ignored, so
    unset CLI flags fall through to the environment.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    values: dict[str, Any] = {}
    for var, field in _ENV_FIELDS.items():
        raw = env.get(var, "")
        if raw.strip():
            values[field] = raw
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get("api_key"):
        raise ConfigError("OPENROUTER_API_KEY is not set (add it to the environment or .env)")

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e

    logger.debug(
        "settings loaded end_marker=%s human=%s shuffle=%s max_words=%d delay_ms=%d",
        settings.end_marker, settings.human, settings.shuffle,
        settings.max_words, settings.delay_ms,
    )
    return settings
