"""Shared fixtures: deterministic env, fresh settings and metrics per test."""

import pytest

from app.infra.llm_control import get_llm_semaphore
from app.infra.settings import get_infra_settings
from config.settings import reset_settings_cache
from observability.metrics import reset_metrics_client

TEST_SECRET = "test-encryption-secret-32chars-ok"

_PROVIDER_KEYS = ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_AI_API_KEY", "GEMINI_API_KEY")


def _reset_caches() -> None:
    reset_settings_cache()
    get_infra_settings.cache_clear()
    get_llm_semaphore.cache_clear()
    reset_metrics_client()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    monkeypatch.setenv("NDUMED_SKIP_DOTENV", "1")
    monkeypatch.setenv("ENCRYPTION_SECRET", TEST_SECRET)
    monkeypatch.delenv("METRICS_BACKEND", raising=False)
    for name in _PROVIDER_KEYS:
        monkeypatch.delenv(name, raising=False)
    _reset_caches()
    yield monkeypatch
    _reset_caches()


@pytest.fixture
def without_secret(monkeypatch):
    monkeypatch.delenv("ENCRYPTION_SECRET", raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()
