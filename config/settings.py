"""Configuration settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings

ENCRYPTION_SECRET_ENV = "ENCRYPTION_SECRET"


class EncryptionSettings(BaseSettings):
    """Operator secret for field-level encryption.

    The secret is read once from the process environment and held as a
    ``SecretStr`` so it never shows up in reprs, tracebacks, or logs.
    """

    encryption_secret: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(ENCRYPTION_SECRET_ENV),
    )

    model_config = {"extra": "ignore"}

    def secret_value(self) -> str | None:
        if self.encryption_secret is None:
            return None
        value = self.encryption_secret.get_secret_value()
        return value or None


class MfaSettings(BaseSettings):
    """Settings for TOTP enrollment."""

    issuer: str = "NdụMed"

    model_config = {"env_prefix": "MFA_", "extra": "ignore"}


class AIProviderSettings(BaseSettings):
    """API keys and model selection for lab-result interpretation."""

    openai_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("OPENAI_API_KEY")
    )
    anthropic_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("ANTHROPIC_API_KEY")
    )
    google_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("GOOGLE_AI_API_KEY", "GEMINI_API_KEY")
    )

    openai_model: str = Field(default="gpt-4o", validation_alias=AliasChoices("AI_OPENAI_MODEL"))
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        validation_alias=AliasChoices("AI_ANTHROPIC_MODEL"),
    )
    # Tried in order; earlier Gemini generations are retired upstream.
    google_models: list[str] = Field(
        default_factory=lambda: ["gemini-2.5-flash", "gemini-2.5-flash-lite"],
        validation_alias=AliasChoices("AI_GOOGLE_MODELS"),
    )

    openai_base_url: str = Field(
        default="https://api.openai.com", validation_alias=AliasChoices("OPENAI_BASE_URL")
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com", validation_alias=AliasChoices("ANTHROPIC_BASE_URL")
    )
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        validation_alias=AliasChoices("GOOGLE_AI_BASE_URL"),
    )

    temperature: float = Field(default=0.2, validation_alias=AliasChoices("AI_TEMPERATURE"))
    max_tokens: int = Field(default=1000, validation_alias=AliasChoices("AI_MAX_TOKENS"))

    model_config = {"extra": "ignore", "protected_namespaces": ()}

    def api_key(self, provider: str) -> str | None:
        secret = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }.get(provider)
        if secret is None:
            return None
        return secret.get_secret_value().strip() or None


@lru_cache(maxsize=1)
def get_encryption_settings() -> EncryptionSettings:
    return EncryptionSettings()


@lru_cache(maxsize=1)
def get_mfa_settings() -> MfaSettings:
    return MfaSettings()


@lru_cache(maxsize=1)
def get_ai_provider_settings() -> AIProviderSettings:
    return AIProviderSettings()


def reset_settings_cache() -> None:
    """Drop memoized settings so the next access re-reads the environment."""
    get_encryption_settings.cache_clear()
    get_mfa_settings.cache_clear()
    get_ai_provider_settings.cache_clear()


__all__ = [
    "ENCRYPTION_SECRET_ENV",
    "EncryptionSettings",
    "MfaSettings",
    "AIProviderSettings",
    "get_encryption_settings",
    "get_mfa_settings",
    "get_ai_provider_settings",
    "reset_settings_cache",
]
