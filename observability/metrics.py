"""Metrics client abstraction and implementations.

This module provides:
- MetricsClient: Abstract base class for metrics emission
- NullMetricsClient: No-op implementation (default)
- StdoutMetricsClient: JSON lines on stderr for debugging
- InMemoryMetricsClient: Thread-safe in-process counters and timings

Select the backend with ``METRICS_BACKEND`` (``null``, ``stdout``, ``memory``)
or install one explicitly with :func:`set_metrics_client`.
"""

from __future__ import annotations

import json
import os
import sys
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any


class MetricsClient(ABC):
    """Abstract base class for metrics emission."""

    @abstractmethod
    def incr(self, name: str, tags: dict[str, str] | None = None, value: int = 1) -> None:
        """Increment a counter metric."""
        ...

    @abstractmethod
    def timing(self, name: str, value_ms: float, tags: dict[str, str] | None = None) -> None:
        """Record a timing value in milliseconds."""
        ...


class NullMetricsClient(MetricsClient):
    """No-op metrics client for when metrics are disabled."""

    def incr(self, name: str, tags: dict[str, str] | None = None, value: int = 1) -> None:
        pass

    def timing(self, name: str, value_ms: float, tags: dict[str, str] | None = None) -> None:
        pass


class StdoutMetricsClient(MetricsClient):
    """Emit metrics as JSON to stderr for development/debugging."""

    def __init__(self, prefix: str = "ndumed"):
        self.prefix = prefix

    def _emit(self, metric_type: str, name: str, value: Any, tags: dict[str, str] | None) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "type": metric_type,
            "metric": f"{self.prefix}.{name}",
            "value": value,
            "tags": tags or {},
        }
        print(json.dumps(record), file=sys.stderr)

    def incr(self, name: str, tags: dict[str, str] | None = None, value: int = 1) -> None:
        self._emit("counter", name, value, tags)

    def timing(self, name: str, value_ms: float, tags: dict[str, str] | None = None) -> None:
        self._emit("timing", name, value_ms, tags)


def _tag_key(tags: dict[str, str] | None) -> tuple[tuple[str, str], ...]:
    return tuple(sorted((tags or {}).items()))


class InMemoryMetricsClient(MetricsClient):
    """Accumulates counters and timings in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, dict[tuple, int]] = defaultdict(lambda: defaultdict(int))
        self._timings: dict[str, dict[tuple, list[float]]] = defaultdict(lambda: defaultdict(list))

    def incr(self, name: str, tags: dict[str, str] | None = None, value: int = 1) -> None:
        with self._lock:
            self._counters[name][_tag_key(tags)] += value

    def timing(self, name: str, value_ms: float, tags: dict[str, str] | None = None) -> None:
        with self._lock:
            self._timings[name][_tag_key(tags)].append(float(value_ms))

    def count(self, name: str, tags: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(_tag_key(tags), 0)

    def timings(self, name: str, tags: dict[str, str] | None = None) -> list[float]:
        with self._lock:
            return list(self._timings.get(name, {}).get(_tag_key(tags), []))

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


# Global singleton
_metrics_client: MetricsClient | None = None


def get_metrics_client() -> MetricsClient:
    """Get the global metrics client, initializing from METRICS_BACKEND if needed."""
    global _metrics_client
    if _metrics_client is None:
        backend = os.getenv("METRICS_BACKEND", "null").lower()
        if backend == "stdout":
            _metrics_client = StdoutMetricsClient()
        elif backend == "memory":
            _metrics_client = InMemoryMetricsClient()
        else:
            _metrics_client = NullMetricsClient()
    return _metrics_client


def set_metrics_client(client: MetricsClient) -> None:
    """Set the global metrics client."""
    global _metrics_client
    _metrics_client = client


def reset_metrics_client() -> None:
    """Forget the global client; the next access re-reads METRICS_BACKEND."""
    global _metrics_client
    _metrics_client = None
