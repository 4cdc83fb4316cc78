"""
respgate - API Server

FastAPI application that fronts the OpenAI Responses API with a
normalized SSE protocol and enriched error responses.

Features:
- /v1/responses create, retrieve, resume, delete and cancel
- Named SSE events for every upstream streaming event
- One EnrichedErrorResponse shape for every failure
- Prometheus metrics, OpenTelemetry spans, JSON logs and interaction logs
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import close_openai_client, register_exception_handlers, responses_router
from .config import GatewayConfig, get_config, validate_config
from .observability import (
    ObservabilityMiddleware,
    get_logger,
    metrics_endpoint,
    setup_observability,
)


# ============================================================
# Lifespan management
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration, start observability, close the client on shutdown."""
    config: GatewayConfig = app.state.config
    validate_config(config)

    observability = setup_observability(
        service_name="respgate",
        service_version=__version__,
        log_level=config.log_level,
    )

    logger = get_logger("respgate.server")
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; upstream calls will return 503")

    logger.info(
        "respgate server ready",
        environment=config.environment,
        base_url=config.openai_base_url,
        default_model=config.default_model,
        log_dir=config.log_dir,
    )

    yield

    await close_openai_client()
    observability["tracing"].shutdown()
    logger.info("respgate server stopped")


# ============================================================
# FastAPI App
# ============================================================

def create_app(config: Optional[GatewayConfig] = None) -> FastAPI:
    """Build the gateway application."""
    config = config or get_config()

    app = FastAPI(
        title="respgate",
        description="Normalized streaming and error gateway for the OpenAI Responses API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    # First added = innermost
    app.add_middleware(ObservabilityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins or ["*"],
        allow_credentials=bool(config.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(responses_router)

    @app.get("/health")
    async def health_check():
        """Liveness check."""
        return {
            "status": "healthy",
            "version": __version__,
            "environment": config.environment,
            "upstream_configured": bool(config.openai_api_key),
        }

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics in text exposition format."""
        return metrics_endpoint()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "respgate.server:app",
        host="0.0.0.0",
        port=get_config().port,
    )
