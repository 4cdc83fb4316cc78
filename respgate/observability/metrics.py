"""
respgate - Prometheus Metrics

Metrics exposed:
- respgate_requests_total: Counter of HTTP requests by endpoint, status, streaming
- respgate_request_duration_seconds: Histogram of HTTP request latency
- respgate_active_streams: Gauge of SSE streams currently open
- respgate_stream_events_total: Counter of normalized events by category and name
- respgate_stream_duration_seconds: Histogram of stream lifetime by outcome
- respgate_tokens_total: Counter of tokens used (input/output/cached/reasoning)
- respgate_cost_usd_total: Counter of estimated cost in USD
- respgate_errors_total: Counter of classified errors by kind and status

Usage:
    from respgate.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_stream_event(category="text", event="text_delta")

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import Response


class MetricsCollector:
    """
    Central metrics collector using Prometheus client.

    One collector per registry; use get_metrics() for the shared instance.
    """

    _instance: Optional["MetricsCollector"] = None

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.requests_total = Counter(
            "respgate_requests_total",
            "Total number of HTTP requests",
            labelnames=["endpoint", "method", "status", "streaming"],
            registry=registry,
        )

        # Generation calls typically range from 0.1s to 60s+
        self.request_duration = Histogram(
            "respgate_request_duration_seconds",
            "Request duration in seconds",
            labelnames=["endpoint", "method", "streaming"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=registry,
        )

        self.active_streams = Gauge(
            "respgate_active_streams",
            "Number of SSE streams currently open",
            labelnames=["endpoint"],
            registry=registry,
        )

        self.stream_events_total = Counter(
            "respgate_stream_events_total",
            "Normalized streaming events emitted",
            labelnames=["category", "event"],
            registry=registry,
        )

        self.stream_duration = Histogram(
            "respgate_stream_duration_seconds",
            "Lifetime of a normalized stream",
            labelnames=["outcome"],
            buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, float("inf")),
            registry=registry,
        )

        self.tokens_total = Counter(
            "respgate_tokens_total",
            "Total tokens used",
            labelnames=["model", "type"],
            registry=registry,
        )

        self.cost_total = Counter(
            "respgate_cost_usd_total",
            "Estimated cost in USD",
            labelnames=["model"],
            registry=registry,
        )

        self.errors_total = Counter(
            "respgate_errors_total",
            "Classified upstream and gateway errors",
            labelnames=["kind", "status"],
            registry=registry,
        )

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def record_request(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        duration_seconds: float,
        streaming: bool = False,
    ):
        """Record a completed HTTP request."""
        streaming_label = "true" if streaming else "false"

        self.requests_total.labels(
            endpoint=endpoint,
            method=method,
            status=str(status_code),
            streaming=streaming_label,
        ).inc()

        self.request_duration.labels(
            endpoint=endpoint,
            method=method,
            streaming=streaming_label,
        ).observe(duration_seconds)

    def record_stream_event(self, category: str, event: str):
        """Count one emitted SSE event."""
        self.stream_events_total.labels(category=category, event=event).inc()

    def record_stream_finished(self, outcome: str, duration_seconds: float):
        """Record the end of a stream; outcome is completed, failed or aborted."""
        self.stream_duration.labels(outcome=outcome).observe(duration_seconds)

    def record_usage(self, model: str, usage: Optional[dict], cost_usd: float = 0.0):
        """Record token usage and estimated cost from an extracted usage summary."""
        if usage:
            for token_type, key in (
                ("input", "prompt_tokens"),
                ("output", "completion_tokens"),
                ("cached", "cached_tokens"),
                ("reasoning", "reasoning_tokens"),
            ):
                value = usage.get(key) or 0
                if value > 0:
                    self.tokens_total.labels(model=model, type=token_type).inc(value)

        if cost_usd > 0:
            self.cost_total.labels(model=model).inc(cost_usd)

    def record_error(self, kind: str, status_code: int):
        """Count one classified error."""
        self.errors_total.labels(kind=kind, status=str(status_code)).inc()

    def track_active_stream(self, endpoint: str) -> "ActiveStreamTracker":
        """Context manager to track open streams."""
        return ActiveStreamTracker(self, endpoint)


class ActiveStreamTracker:
    """Context manager for tracking open streams."""

    def __init__(self, collector: MetricsCollector, endpoint: str):
        self.collector = collector
        self.endpoint = endpoint

    def __enter__(self):
        self.collector.active_streams.labels(endpoint=self.endpoint).inc()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.collector.active_streams.labels(endpoint=self.endpoint).dec()


_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times: without a registry the existing collector
    is kept. Passing a registry installs a new collector bound to it.
    """
    global _metrics_instance

    if registry is None:
        if _metrics_instance is not None:
            return _metrics_instance
        registry = REGISTRY

    _metrics_instance = MetricsCollector(registry)
    MetricsCollector._instance = _metrics_instance
    return _metrics_instance


def set_metrics(collector: Optional[MetricsCollector]) -> None:
    """Replace the shared collector (None resets it)."""
    global _metrics_instance
    _metrics_instance = collector
    MetricsCollector._instance = collector


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = MetricsCollector.get_instance()
    return _metrics_instance


def metrics_endpoint() -> Response:
    """Generate Prometheus metrics endpoint response."""
    registry = _metrics_instance.registry if _metrics_instance else REGISTRY
    return Response(
        content=generate_latest(registry),
        media_type=CONTENT_TYPE_LATEST,
    )
