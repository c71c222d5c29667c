"""Typed settings loader for the SkyCast weather core."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    gemini_api_key: str = Field(alias="GEMINI_API_KEY", repr=False)
    gemini_api_base_url: AnyUrl = Field(
        default="https://generativelanguage.googleapis.com",
        alias="GEMINI_API_BASE_URL",
        validate_default=True,
    )
    gemini_model: str = Field(default="gemini-3-flash-preview", alias="GEMINI_MODEL")
    gemini_timeout_seconds: float = Field(default=60.0, alias="GEMINI_TIMEOUT_SECONDS")

    cache_path: Path = Field(default=Path("./data/skycast_cache.json"), alias="CACHE_PATH")
    cache_prefix: str = Field(default="skycast_v3_", alias="CACHE_PREFIX")
    cache_fresh_ttl_seconds: int = Field(default=30 * 60, alias="CACHE_FRESH_TTL_SECONDS")

    sync_interval_seconds: int = Field(default=15 * 60, alias="SYNC_INTERVAL_SECONDS")
    default_city: str = Field(default="Bellary", alias="DEFAULT_CITY")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        """Accept lowercase level names from the environment."""
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_values(self) -> Settings:
        """Validate numeric bounds and required non-empty strings."""
        if not self.gemini_api_key.strip():
            raise ValueError("GEMINI_API_KEY must not be empty.")
        if not self.gemini_model.strip():
            raise ValueError("GEMINI_MODEL must not be empty.")
        if self.gemini_timeout_seconds <= 0:
            raise ValueError("GEMINI_TIMEOUT_SECONDS must be > 0.")
        if not self.cache_prefix.strip():
            raise ValueError("CACHE_PREFIX must not be empty.")
        if self.cache_fresh_ttl_seconds <= 0:
            raise ValueError("CACHE_FRESH_TTL_SECONDS must be > 0.")
        if self.sync_interval_seconds <= 0:
            raise ValueError("SYNC_INTERVAL_SECONDS must be > 0.")
        if not self.default_city.strip():
            raise ValueError("DEFAULT_CITY must not be empty.")
        return self

    @property
    def cache_fresh_ttl_ms(self) -> int:
        return self.cache_fresh_ttl_seconds * 1000

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "base_url": str(self.gemini_api_base_url),
            "model": self.gemini_model,
            "timeout_seconds": self.gemini_timeout_seconds,
            "cache_path": str(self.cache_path),
            "cache_prefix": self.cache_prefix,
            "cache_fresh_ttl_seconds": self.cache_fresh_ttl_seconds,
            "sync_interval_seconds": self.sync_interval_seconds,
            "default_city": self.default_city,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    try:
        settings.cache_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Cannot create cache directory {settings.cache_path.parent}: {exc}") from exc
    return settings
