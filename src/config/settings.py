"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Azure OpenAI realtime deployment
    azure_openai_service_endpoint: str | None = Field(
        default=None,
        description="Resource endpoint, e.g. https://<name>.openai.azure.com",
    )
    azure_openai_deployment_model_name: str | None = Field(default=None)
    azure_openai_service_key: str | None = Field(
        default=None,
        description="API key. When unset a bearer token from azure-identity is used.",
    )
    azure_openai_api_version: str = Field(default="2024-10-01-preview")
    upstream_connect_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Session overrides applied to every session.update
    voice_choice: str = Field(default="alloy")
    system_message: str | None = Field(default=None)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    disable_audio: bool | None = Field(default=None)
    model: str | None = Field(default=None)

    # Phone sessions (ACS)
    phone_voice_choice: str = Field(default="shimmer")
    audio_send_max_retries: int = Field(default=5, ge=1)
    audio_send_retry_delay_seconds: float = Field(default=1.0, ge=0.0)

    # Tools
    ai_companion_url: str | None = Field(
        default=None,
        description="Optional chat endpoint backing the referToAICompanion tool.",
    )
    ai_companion_timeout_seconds: float = Field(default=30.0, gt=0.0)
    knowledge_base_retriever: str | None = Field(
        default=None,
        description="Import path (module:function) of an async retriever backing searchKnowledgeBase.",
    )

    @field_validator("azure_openai_service_endpoint")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
