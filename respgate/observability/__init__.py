"""
respgate - Observability Module

Observability stack:
- Prometheus metrics (requests, stream events, tokens, cost, errors)
- OpenTelemetry tracing (server spans, stream spans)
- Structured JSON logging with context injection
- Append-only interaction log for upstream calls and streaming events

Usage:
    from respgate.observability import setup_observability, get_logger

    setup_observability(service_name="respgate")
    logger = get_logger(__name__)
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    set_metrics,
    metrics_endpoint,
)
from .tracing import (
    TracingManager,
    get_tracing_manager,
    setup_tracing,
)
from .logging import (
    StructuredLogger,
    InteractionLogger,
    LogContext,
    get_logger,
    get_interaction_logger,
    set_interaction_logger,
    setup_logging,
    utc_timestamp,
)
from .middleware import (
    ObservabilityMiddleware,
    setup_observability,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    "set_metrics",
    "metrics_endpoint",
    # Tracing
    "TracingManager",
    "get_tracing_manager",
    "setup_tracing",
    # Logging
    "StructuredLogger",
    "InteractionLogger",
    "LogContext",
    "get_logger",
    "get_interaction_logger",
    "set_interaction_logger",
    "setup_logging",
    "utc_timestamp",
    # Combined
    "ObservabilityMiddleware",
    "setup_observability",
]
