# config.py
"""Configuration settings for the reading activity generation pipeline.
Uses Pydantic BaseSettings for automatic environment variable loading.
"""

from __future__ import annotations

import structlog
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = structlog.get_logger()

_PLACEHOLDER_API_KEYS = {"", "nope", "changeme", "your-api-key"}


class ActivitySettings(BaseSettings):
    """Full configuration for the activity generation pipeline."""

    # API and Model Configuration
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_API_KEY: str = "nope"
    GENERATION_MODEL: str = "gpt-4-turbo"
    LLM_TOP_P: float = 1.0

    # Temperature Settings (per activity type)
    TEMPERATURE_WHO: float = 0.8
    TEMPERATURE_WHERE: float = 0.8
    TEMPERATURE_SEQUENCE: float = 0.6
    TEMPERATURE_MAIN_IDEA: float = 0.7
    TEMPERATURE_VOCABULARY: float = 0.7
    TEMPERATURE_PREDICT: float = 0.8

    # Output budgets and regeneration adjustments
    DEFAULT_MAX_TOKENS: int = 1500
    MAX_GENERATION_TOKENS: int = 4000
    MAX_GENERATION_ATTEMPTS: int = 3
    REGENERATION_TEMPERATURE_STEP: float = 0.2
    MIN_TEMPERATURE: float = 0.2
    REGENERATION_TOKEN_MULTIPLIER: float = 1.5

    # LLM Call Settings
    LLM_CALL_TIMEOUT_SECONDS: float = 90.0
    LLM_RETRY_ATTEMPTS: int = 3
    HTTPX_TIMEOUT: float = 120.0
    MAX_CONCURRENT_LLM_CALLS: int = 4
    # Wall-clock ceiling for one orchestrator call; None disables it
    GENERATION_DEADLINE_SECONDS: float | None = 240.0

    # Backoff between retries of the same call
    BACKOFF_BASE_DELAY_MS: float = 1000.0
    BACKOFF_MAX_DELAY_MS: float = 10000.0
    BACKOFF_MIN_DELAY_MS: float = 100.0
    BACKOFF_JITTER_RATIO: float = 0.25

    # Circuit breaker
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_COOLDOWN_SECONDS: float = 30.0

    # Content cache
    CONTENT_CACHE_TTL_SECONDS: float = 24 * 60 * 60
    CONTENT_CACHE_MAX_ENTRIES: int = 500
    CONTENT_CACHE_EVICTION_RATIO: float = 0.2
    CACHE_INVALIDATION_MIN_AGE: int = 3
    CACHE_INVALIDATION_MAX_AGE: int = 18

    # Content validation
    MIN_CONTENT_LENGTH: int = 50
    MIN_UNIQUE_TOKEN_RATIO: float = 0.3

    # Tokenizer (telemetry sizes)
    TELEMETRY_USE_TOKENIZER: bool = True
    TIKTOKEN_DEFAULT_ENCODING: str = "cl100k_base"
    FALLBACK_CHARS_PER_TOKEN: float = 4.0
    TOKENIZER_CACHE_SIZE: int = 10

    # Logging
    LOG_LEVEL_STR: str = Field("INFO", alias="ACTIVITY_LOG_LEVEL")
    LOG_FORMAT: str = (
        "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s:%(lineno)d] - %(message)s"
    )
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    LOG_DIR: str = "logs"
    LOG_FILE: str | None = None
    ENABLE_RICH_LOGGING: bool = True

    @model_validator(mode="after")
    def check_bounds(self) -> ActivitySettings:
        if self.BACKOFF_MIN_DELAY_MS > self.BACKOFF_MAX_DELAY_MS:
            raise ValueError(
                "BACKOFF_MIN_DELAY_MS must not exceed BACKOFF_MAX_DELAY_MS"
            )
        if not 0 <= self.BACKOFF_JITTER_RATIO < 1:
            raise ValueError("BACKOFF_JITTER_RATIO must be in [0, 1)")
        if self.CIRCUIT_BREAKER_FAILURE_THRESHOLD < 1:
            raise ValueError("CIRCUIT_BREAKER_FAILURE_THRESHOLD must be >= 1")
        if self.MAX_GENERATION_ATTEMPTS < 1 or self.LLM_RETRY_ATTEMPTS < 1:
            raise ValueError("Attempt counts must be >= 1")
        if self.CONTENT_CACHE_MAX_ENTRIES < 1:
            raise ValueError("CONTENT_CACHE_MAX_ENTRIES must be >= 1")
        if self.CACHE_INVALIDATION_MIN_AGE > self.CACHE_INVALIDATION_MAX_AGE:
            raise ValueError(
                "CACHE_INVALIDATION_MIN_AGE must not exceed CACHE_INVALIDATION_MAX_AGE"
            )
        if self.OPENAI_API_KEY.strip().lower() in _PLACEHOLDER_API_KEYS:
            logger.warning(
                "OPENAI_API_KEY is a placeholder; every generation will fall back "
                "to static content."
            )
        return self

    @property
    def worst_case_generation_seconds(self) -> float:
        """Upper bound on one orchestrator call without a deadline."""
        max_backoff = self.BACKOFF_MAX_DELAY_MS * (1 + self.BACKOFF_JITTER_RATIO)
        per_call = self.LLM_CALL_TIMEOUT_SECONDS + max_backoff / 1000.0
        bound = self.MAX_GENERATION_ATTEMPTS * self.LLM_RETRY_ATTEMPTS * per_call
        if self.GENERATION_DEADLINE_SECONDS is not None:
            return min(bound, self.GENERATION_DEADLINE_SECONDS)
        return bound

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", populate_by_name=True, extra="ignore"
    )


settings = ActivitySettings()
