"""
respgate - API Module

HTTP surface for the gateway: routes, request models, dependencies and
exception handlers.
"""

from .routes import responses_router
from .errors import register_exception_handlers, enriched_error_handler
from .dependencies import (
    get_openai_client,
    get_dispatcher,
    get_usage_estimator,
    close_openai_client,
    reset_dependencies,
)

__all__ = [
    "responses_router",
    "register_exception_handlers",
    "enriched_error_handler",
    "get_openai_client",
    "get_dispatcher",
    "get_usage_estimator",
    "close_openai_client",
    "reset_dependencies",
]
