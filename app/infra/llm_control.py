"""Concurrency limiting + retry utilities for outbound LLM calls."""

from __future__ import annotations

import random
import threading
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Mapping

from app.infra.settings import get_infra_settings

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


@lru_cache(maxsize=1)
def get_llm_semaphore() -> threading.BoundedSemaphore:
    return threading.BoundedSemaphore(value=get_infra_settings().llm_concurrency)


@contextmanager
def llm_slot() -> Iterator[None]:
    """Global concurrency gate for LLM requests (thread-safe)."""
    sem = get_llm_semaphore()
    sem.acquire()
    try:
        yield
    finally:
        sem.release()


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def parse_retry_after_seconds(headers: Mapping[str, str]) -> float | None:
    value = headers.get("retry-after") or headers.get("Retry-After")
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def backoff_seconds(attempt: int, *, base: float = 0.75, cap: float = 10.0) -> float:
    """Exponential backoff with jitter."""
    exp = base * (2**max(0, int(attempt)))
    jitter = random.uniform(0.0, base)
    return min(cap, exp + jitter)


def sleep_before_retry(headers: Mapping[str, str], attempt: int, deadline: float) -> bool:
    """Sleep for Retry-After (or backoff) unless the deadline has passed.

    Returns False when no time remains and the caller should stop retrying.
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        return False
    retry_after = parse_retry_after_seconds(headers)
    delay = retry_after if retry_after is not None else backoff_seconds(attempt)
    time.sleep(min(delay, remaining))
    return True


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "backoff_seconds",
    "get_llm_semaphore",
    "is_retryable_status",
    "llm_slot",
    "parse_retry_after_seconds",
    "sleep_before_retry",
]
