from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.chat.presets import SystemPromptPreset, is_known_preset


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "chat-relay"
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Runtime environment: development|production.",
    )
    app_debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("APP_DEBUG", "app_debug"),
        description="Expose internal error detail in error responses. Never enable in production.",
    )

    # Upstream LLM (OpenAI-compatible chat completions, e.g. OpenAI or OpenRouter)
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
        description="API key for the upstream chat-completions service.",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
        description="Model identifier sent with every upstream request.",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
        description="Base URL of the upstream API (e.g. https://openrouter.ai/api/v1).",
    )
    openai_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_SECONDS", "openai_timeout_seconds"),
        description="Timeout for upstream requests (seconds). Applies per read when streaming.",
    )

    # Chat relay
    chat_max_prompt_chars: int = Field(
        default=4000,
        ge=1,
        validation_alias=AliasChoices("CHAT_MAX_PROMPT_CHARS", "chat_max_prompt_chars"),
        description="Maximum accepted prompt length in characters.",
    )
    chat_system_prompts_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "CHAT_SYSTEM_PROMPTS_ENABLED", "chat_system_prompts_enabled"
        ),
        description="If false, no system message is ever sent upstream.",
    )
    chat_system_prompt: str = Field(
        default=SystemPromptPreset.DEFAULT.value,
        validation_alias=AliasChoices("CHAT_SYSTEM_PROMPT", "chat_system_prompt"),
        description="Preset key used for every chat request. Never taken from callers.",
    )
    chat_default_system_prompt: str = Field(
        default=SystemPromptPreset.DEFAULT.value,
        validation_alias=AliasChoices(
            "CHAT_DEFAULT_SYSTEM_PROMPT", "chat_default_system_prompt"
        ),
        description=(
            "Preset key treated as the default. Its text is never sent upstream as a "
            "system message."
        ),
    )

    @field_validator("chat_system_prompt", "chat_default_system_prompt")
    @classmethod
    def _known_preset(cls, value: str) -> str:
        if not is_known_preset(value):
            raise ValueError(f"unknown system prompt preset: {value!r}")
        return value

    @property
    def is_development(self) -> bool:
        return str(self.app_env).strip().lower() == "development"

    @property
    def expose_error_detail(self) -> bool:
        return bool(self.app_debug) or self.is_development


@lru_cache
def get_settings() -> Settings:
    return Settings()
