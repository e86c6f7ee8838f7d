"""Infrastructure/runtime settings (env-driven).

Operational knobs for outbound AI calls. Secrets and model selection live in
``config.settings``; this module only carries concurrency and timing limits.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _get_int(*names: str, default: int) -> int:
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        raw = raw.strip()
        if not raw:
            continue
        try:
            return int(raw)
        except ValueError:
            continue
    return default


def _get_float(*names: str, default: float) -> float:
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        raw = raw.strip()
        if not raw:
            continue
        try:
            return float(raw)
        except ValueError:
            continue
    return default


@dataclass(frozen=True)
class InfraSettings:
    """Runtime toggles for outbound LLM traffic."""

    llm_concurrency: int
    llm_timeout_s: float
    llm_max_attempts: int

    @staticmethod
    def from_env() -> "InfraSettings":
        llm_concurrency = max(1, _get_int("LLM_CONCURRENCY", "NDUMED_LLM_CONCURRENCY", default=2))
        llm_timeout_s = _get_float("LLM_TIMEOUT_S", "NDUMED_LLM_TIMEOUT_S", default=60.0)
        llm_max_attempts = max(1, _get_int("LLM_MAX_ATTEMPTS", "NDUMED_LLM_MAX_ATTEMPTS", default=2))

        return InfraSettings(
            llm_concurrency=llm_concurrency,
            llm_timeout_s=llm_timeout_s,
            llm_max_attempts=llm_max_attempts,
        )


@lru_cache(maxsize=1)
def get_infra_settings() -> InfraSettings:
    return InfraSettings.from_env()


__all__ = ["InfraSettings", "get_infra_settings"]
