"""
respgate - Observability Middleware

Per-request correlation id, log context, server span and request metrics.

Usage:
    from respgate.observability import setup_observability, ObservabilityMiddleware

    setup_observability(service_name="respgate")
    app.add_middleware(ObservabilityMiddleware)
"""

import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .metrics import get_metrics, setup_metrics
from .tracing import get_tracing_manager, setup_tracing, TraceContext
from .logging import get_logger, LogContext, setup_logging


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Unified observability middleware.

    Sets ``request.state.request_id`` so handlers and the error enricher
    can echo it back.
    """

    EXCLUDE_PATHS = {"/health", "/metrics", "/openapi.json", "/docs", "/redoc"}

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[set] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or self.EXCLUDE_PATHS
        self.logger = get_logger("respgate.middleware")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        metrics = get_metrics()
        tracing = get_tracing_manager()
        headers = dict(request.headers)

        request_id = headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:24]}"
        endpoint_group = self._get_endpoint_group(request.url.path)
        start_time = time.perf_counter()

        with tracing.start_server_span(
            name=f"{request.method} {endpoint_group}",
            headers=headers,
            attributes={
                "http.method": request.method,
                "http.route": endpoint_group,
                "respgate.request_id": request_id,
            },
        ) as span:
            trace_ctx = TraceContext.from_span(span)
            LogContext.set_current(LogContext(
                request_id=request_id,
                trace_id=trace_ctx.trace_id,
                span_id=trace_ctx.span_id,
                endpoint=request.url.path,
            ))
            request.state.request_id = request_id
            request.state.trace_id = trace_ctx.trace_id

            try:
                response = await call_next(request)
            except Exception as e:
                duration_seconds = time.perf_counter() - start_time
                tracing.record_exception(e)
                metrics.record_request(
                    endpoint=endpoint_group,
                    method=request.method,
                    status_code=500,
                    duration_seconds=duration_seconds,
                )
                self.logger.exception(
                    "Request failed with exception",
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=round(duration_seconds * 1000, 2),
                )
                raise
            finally:
                LogContext.clear()

            duration_seconds = time.perf_counter() - start_time
            streaming = response.headers.get("content-type", "").startswith("text/event-stream")
            span.set_attribute("http.status_code", response.status_code)

            metrics.record_request(
                endpoint=endpoint_group,
                method=request.method,
                status_code=response.status_code,
                duration_seconds=duration_seconds,
                streaming=streaming,
            )
            self._log_request(request, response, duration_seconds * 1000)

            response.headers["X-Request-Id"] = request_id
            response.headers["X-Trace-Id"] = trace_ctx.trace_id
            return response

    def _get_endpoint_group(self, path: str) -> str:
        """Collapse response ids so metrics labels stay bounded."""
        parts = path.rstrip("/").split("/")
        if len(parts) >= 4 and parts[1] == "v1" and parts[2] == "responses":
            return "/".join(parts[:3] + ["{response_id}"] + parts[4:])
        return path

    def _log_request(self, request: Request, response: Response, duration_ms: float):
        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else None,
        }

        if response.status_code >= 500:
            self.logger.error("Request completed with server error", **log_data)
        elif response.status_code >= 400:
            self.logger.warning("Request completed with client error", **log_data)
        else:
            self.logger.info("Request completed", **log_data)


_observability_initialized = False


def setup_observability(
    service_name: str = "respgate",
    service_version: str = "1.0.0",
    log_level: str = "INFO",
) -> Dict[str, Any]:
    """
    Setup logging, metrics and tracing. Safe to call multiple times.

    Returns:
        Dict with initialized components
    """
    global _observability_initialized

    log_level = os.getenv("LOG_LEVEL", log_level)
    json_output = os.getenv("LOG_FORMAT", "json").lower() == "json"
    setup_logging(level=log_level, json_output=json_output)

    result: Dict[str, Any] = {"logging": True}
    result["metrics"] = setup_metrics()
    if _observability_initialized:
        result["tracing"] = get_tracing_manager()
    else:
        result["tracing"] = setup_tracing(
            service_name=service_name,
            service_version=service_version,
        )
        get_logger("respgate.observability").info(
            "Observability initialized",
            service_name=service_name,
            service_version=service_version,
        )
        _observability_initialized = True

    return result
