"""Configuration objects for the OkDates engine."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables."""

    llm_enabled: bool = Field(default=True, validation_alias="OKDATES_LLM_ENABLED")
    llm_base_url: HttpUrl = Field(default="http://localhost:11434", validation_alias="OKDATES_LLM_BASE_URL")
    llm_model: str = Field(default="llama3.1:8b", validation_alias="OKDATES_LLM_MODEL")
    llm_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias="OKDATES_LLM_API_KEY",
        description="Bearer token for hosted Ollama-compatible endpoints.",
    )
    llm_timeout_seconds: float = Field(default=30.0, validation_alias="OKDATES_LLM_TIMEOUT_SECONDS")
    llm_max_attempts: int = Field(
        default=1,
        validation_alias="OKDATES_LLM_MAX_ATTEMPTS",
        description="Attempts made against the model before falling back to basic parsing.",
    )
    llm_temperature: float = Field(default=0.2, validation_alias="OKDATES_LLM_TEMPERATURE")
    default_timezone: str = Field(default="UTC", validation_alias="OKDATES_DEFAULT_TIMEZONE")
    fallback_timezone: str = Field(default="UTC", validation_alias="OKDATES_FALLBACK_TIMEZONE")
    default_meeting_duration: int = Field(default=60, validation_alias="OKDATES_DEFAULT_MEETING_DURATION")
    log_level: str = Field(default="INFO", validation_alias="OKDATES_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("llm_max_attempts")
    @classmethod
    def at_least_one_attempt(cls, value: int) -> int:
        """The model is always tried once before the fallback kicks in."""
        if value < 1:
            raise ValueError("llm_max_attempts must be at least 1")
        return value

    @field_validator("default_meeting_duration")
    @classmethod
    def positive_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_meeting_duration must be positive")
        return value

    @property
    def llm_headers(self) -> dict[str, str]:
        """Headers sent with every model request."""
        headers = {"X-Title": "OkDates"}
        if self.llm_api_key is not None:
            headers["Authorization"] = f"Bearer {self.llm_api_key.get_secret_value()}"
        return headers
