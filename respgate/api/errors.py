"""
respgate - API Error Handlers

Every exception that escapes a route is answered with an
EnrichedErrorResponse body.
"""

import openai
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import get_error_enricher


async def enriched_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Classify the exception and answer with its enriched body."""
    request_body = getattr(request.state, "upstream_params", None)
    response, headers = get_error_enricher().enrich(exc, request.url.path, request_body)

    request_id = getattr(request.state, "request_id", None)
    if request_id:
        headers.setdefault("X-Request-Id", request_id)

    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Route HTTP, upstream, network and unexpected errors through the enricher.

    The ``Exception`` handler runs outside the middleware stack, so it is
    registered alongside the narrower types rather than instead of them.
    """
    app.add_exception_handler(StarletteHTTPException, enriched_error_handler)
    app.add_exception_handler(openai.APIError, enriched_error_handler)
    app.add_exception_handler(OSError, enriched_error_handler)
    app.add_exception_handler(Exception, enriched_error_handler)
