"""
CallRelay Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
All provider API keys use SecretStr to prevent accidental logging. Every
key is optional: a provider without a key is still part of the fallback
order, it simply fails fast and is put on cooldown.
"""

from functools import lru_cache
from typing import Literal
import logging
import sys

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS = ("gemini", "openai", "groq")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    gemini_api_key: SecretStr | None = Field(
        default=None, description="Google Gemini API key (primary provider)"
    )

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key (secondary provider)"
    )

    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key (tertiary provider)"
    )

    gemini_model: str = Field(
        default="gemini-2.5-flash", description="Gemini model name"
    )

    openai_model: str = Field(
        default="gpt-4.1-mini", description="OpenAI chat completions model name"
    )

    groq_model: str = Field(
        # 70B has noticeably better function calling than the 8B instant model
        default="llama-3.3-70b-versatile",
        description="Groq chat completions model name",
    )

    provider_order: list[str] = Field(
        default_factory=lambda: list(KNOWN_PROVIDERS),
        description="Provider priority for initial dispatch (primary first)",
    )

    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=2.0,
        description="Sampling temperature applied identically to every provider",
    )

    max_output_tokens: int = Field(
        default=500,
        gt=0,
        description="Maximum output tokens applied identically to every provider",
    )

    rate_limit_cooldown_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="Cooldown after a 429/quota/rate-limit failure",
    )

    error_cooldown_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Cooldown after any other provider failure",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("provider_order")
    @classmethod
    def validate_provider_order(cls, v: list[str]) -> list[str]:
        """Ensure provider_order names known providers exactly once."""
        normalized = [name.strip().lower() for name in v]
        if not normalized:
            raise ValueError("provider_order must name at least one provider")
        unknown = set(normalized) - set(KNOWN_PROVIDERS)
        if unknown:
            raise ValueError(
                f"provider_order contains unknown providers {sorted(unknown)}; "
                f"valid providers are {list(KNOWN_PROVIDERS)}"
            )
        if len(set(normalized)) != len(normalized):
            raise ValueError("provider_order must not contain duplicates")
        return normalized

    def api_key_for(self, provider: str) -> str | None:
        """Return the plain API key for a provider, or None if unset/empty."""
        secret: SecretStr | None = getattr(self, f"{provider}_api_key", None)
        if secret is None:
            return None
        return secret.get_secret_value() or None

    def model_for(self, provider: str) -> str:
        """Return the configured model name for a provider."""
        return getattr(self, f"{provider}_model")


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from the provider SDKs and their HTTP transports.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("groq").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
