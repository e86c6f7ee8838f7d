# Observability module
from .metrics import (
    InMemoryMetricsClient,
    MetricsClient,
    NullMetricsClient,
    StdoutMetricsClient,
    get_metrics_client,
    reset_metrics_client,
    set_metrics_client,
)
from .timing import TimingContext, timed

__all__ = [
    "InMemoryMetricsClient",
    "MetricsClient",
    "NullMetricsClient",
    "StdoutMetricsClient",
    "get_metrics_client",
    "reset_metrics_client",
    "set_metrics_client",
    "timed",
    "TimingContext",
]
