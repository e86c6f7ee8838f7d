"""Startup environment validation settings."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from app.common.exceptions import ConfigurationError
from config.settings import (
    ENCRYPTION_SECRET_ENV,
    get_ai_provider_settings,
    get_encryption_settings,
    reset_settings_cache,
)

_REPO_ROOT = Path(__file__).resolve().parents[1]

# Secrets shorter than this are accepted but flagged.
MIN_RECOMMENDED_SECRET_LENGTH = 32


def _truthy_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def load_environment(dotenv_path: Path | None = None) -> bool:
    """Load a ``.env`` file without overriding exported variables.

    Tests opt out with ``NDUMED_SKIP_DOTENV=1``. Returns True when a file was loaded.
    """
    if _truthy_env("NDUMED_SKIP_DOTENV"):
        return False
    loaded = load_dotenv(dotenv_path=dotenv_path or _REPO_ROOT / ".env", override=False)
    if loaded:
        reset_settings_cache()
    return loaded


class StartupSettings(BaseSettings):
    """Env-backed startup invariants for process boot."""

    environment: str = Field(default="", validation_alias=AliasChoices("NDUMED_ENV"))
    require_ai_provider: bool = Field(
        default=False,
        validation_alias=AliasChoices("NDUMED_REQUIRE_AI_PROVIDER"),
    )

    model_config = {"extra": "ignore"}

    def validate_runtime_contract(self) -> None:
        logger = logging.getLogger(__name__)

        secret = get_encryption_settings().secret_value()
        if not secret:
            raise ConfigurationError(
                f"{ENCRYPTION_SECRET_ENV} must be set before the service starts; "
                "sensitive fields cannot be stored without it.",
                variable=ENCRYPTION_SECRET_ENV,
            )
        if len(secret) < MIN_RECOMMENDED_SECRET_LENGTH:
            if (self.environment or "").strip().lower() == "production":
                raise ConfigurationError(
                    f"{ENCRYPTION_SECRET_ENV} must be at least "
                    f"{MIN_RECOMMENDED_SECRET_LENGTH} characters in production.",
                    variable=ENCRYPTION_SECRET_ENV,
                )
            logger.warning(
                "%s is shorter than %s characters; use a longer random value.",
                ENCRYPTION_SECRET_ENV,
                MIN_RECOMMENDED_SECRET_LENGTH,
            )

        ai_settings = get_ai_provider_settings()
        if not any(ai_settings.api_key(name) for name in ("openai", "anthropic", "google")):
            if self.require_ai_provider:
                raise ConfigurationError(
                    "NDUMED_REQUIRE_AI_PROVIDER is set but no AI provider key is configured.",
                    variable="OPENAI_API_KEY, ANTHROPIC_API_KEY, GOOGLE_AI_API_KEY",
                )
            logger.warning("No AI provider keys configured; lab interpretation is disabled.")


def validate_startup_env() -> None:
    """Load .env and validate startup env invariants."""
    load_environment()
    StartupSettings().validate_runtime_contract()


__all__ = ["StartupSettings", "load_environment", "validate_startup_env"]
