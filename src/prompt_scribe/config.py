# config.py
# Runtime settings. Values come from the environment (and a .env file when
# present); everything has a default except the provider API key, which is
# only looked up when a provider is built.

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from prompt_scribe.errors import ConfigurationError

DEFAULT_MODEL = "google/gemini-2.5-pro"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SIGNER = "Chief Prompt Officer"


class ScribeConfig(BaseModel):
    """Configuration options for prompt-scribe."""

    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = Field(
        default="OPENROUTER_API_KEY",
        description="Name of the environment variable holding the provider API key.",
    )
    cache_dir: str = ".prompts_cache"
    signer: str = DEFAULT_SIGNER
    max_rounds: int = Field(default=10, ge=1)
    round_timeout: float | None = Field(default=120.0, gt=0)
    tool_timeout: float | None = Field(default=300.0, gt=0)
    search_backend: Literal["duckduckgo", "serper"] = "duckduckgo"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"
    log_dir: str | None = Field(
        default=None, description="Directory for a daily-rolling JSON log file. Unset disables it."
    )

    @classmethod
    def from_env(cls, **overrides) -> "ScribeConfig":
        """
        Build a config from SCRIBE_* environment variables.

        Keyword overrides win over the environment. Timeouts set to "none" or
        "0" are disabled. Raises ConfigurationError on invalid values.
        """
        load_dotenv()

        env_map = {
            "model": "SCRIBE_MODEL",
            "base_url": "SCRIBE_BASE_URL",
            "api_key_env": "SCRIBE_API_KEY_ENV",
            "cache_dir": "SCRIBE_CACHE_DIR",
            "signer": "SCRIBE_SIGNER",
            "max_rounds": "SCRIBE_MAX_ROUNDS",
            "round_timeout": "SCRIBE_ROUND_TIMEOUT",
            "tool_timeout": "SCRIBE_TOOL_TIMEOUT",
            "search_backend": "SCRIBE_SEARCH_BACKEND",
            "log_level": "SCRIBE_LOG_LEVEL",
            "log_format": "SCRIBE_LOG_FORMAT",
            "log_dir": "SCRIBE_LOG_DIR",
        }
        values: dict = {}
        for field, var in env_map.items():
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            if field in ("round_timeout", "tool_timeout") and raw.strip().lower() in ("none", "0"):
                values[field] = None
            else:
                values[field] = raw.strip()
        values.update(overrides)

        try:
            return cls.model_validate(values)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def api_key(self) -> str:
        return require_env(self.api_key_env)


def require_env(name: str) -> str:
    """Return the value of `name` or raise ConfigurationError if it is unset."""
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} is missing")
    return value
