"""
respgate - Responses API

Proxies the OpenAI Responses API. Streaming requests are normalized into
named SSE events; everything else is passed through with usage and cost
recorded in the interaction log.
"""

import inspect
import time
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from openai import AsyncOpenAI

from ...config import get_config
from ...core.serialization import to_jsonable
from ...observability.logging import get_interaction_logger, get_logger
from ...observability.metrics import get_metrics
from ...streaming.dispatcher import EventDispatcher
from ...streaming.normalizer import normalize_stream
from ...streaming.sse import SSEEvent
from ...usage.extractor import UsageEstimator
from ..dependencies import get_dispatcher, get_openai_client, get_usage_estimator
from ..models import CreateResponseRequest, DeletedResponse


router = APIRouter(prefix="/v1", tags=["responses"])
logger = get_logger(__name__)

RESPONSES_ENDPOINT = "/v1/responses"
STREAM_ENDPOINT = "/v1/responses (stream)"
RESUME_ENDPOINT = "/v1/responses/{id}/stream"


# ============================================================
# SSE helpers
# ============================================================

async def _sse_body(events: AsyncIterator[SSEEvent], upstream: Any) -> AsyncIterator[str]:
    """
    Serialize normalized events and close the upstream stream when done.

    A mid-stream failure has already been logged and turned into a final
    ``error`` event by normalize_stream; the response then simply ends.
    """
    try:
        async for sse in events:
            yield sse.to_sse()
    except Exception as e:
        logger.debug("Stream ended after upstream error", error=str(e))
    finally:
        close = getattr(upstream, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result


def _sse_response(request: Request, events: AsyncIterator[SSEEvent], upstream: Any) -> StreamingResponse:
    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        headers["X-Request-Id"] = request_id

    return StreamingResponse(
        _sse_body(events, upstream),
        media_type="text/event-stream",
        headers=headers,
    )


# ============================================================
# Create
# ============================================================

@router.post("/responses")
async def create_response(
    request: Request,
    body: CreateResponseRequest,
    client: AsyncOpenAI = Depends(get_openai_client),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    usage: UsageEstimator = Depends(get_usage_estimator),
):
    """
    Create a model response.

    With ``stream: true`` the upstream event stream is normalized into
    SSE events (``text_delta``, ``function_call_delta``,
    ``response_completed``, ...). Errors raised before the first event
    are returned as enriched JSON errors.
    """
    params = body.upstream_params(get_config().default_model)
    request.state.upstream_params = params

    if body.stream:
        # Opened here so connection and request errors surface as HTTP errors.
        upstream = await client.responses.create(**params, stream=True)
        events = normalize_stream(
            upstream,
            dispatcher=dispatcher,
            endpoint=STREAM_ENDPOINT,
            request=params,
        )
        return _sse_response(request, events, upstream)

    started = time.time()
    response = await client.responses.create(**params)
    latency_ms = int((time.time() - started) * 1000)

    payload = to_jsonable(response)
    response_usage = usage.extract_usage(payload)
    model = payload.get("model") or params["model"]
    cost = usage.estimate_cost(response_usage, model)

    get_interaction_logger().log_openai_interaction({
        "api": "responses",
        "endpoint": RESPONSES_ENDPOINT,
        "request": to_jsonable(params),
        "response": payload,
        "metadata": {
            "latency_ms": latency_ms,
            "tokens_used": response_usage.get("total_tokens") if response_usage else None,
            "cost_estimate": cost,
            "response_status": payload.get("status"),
            "model": model,
        },
    })
    get_metrics().record_usage(model, response_usage, cost)

    return JSONResponse(content=payload)


# ============================================================
# Retrieve / resume / delete / cancel
# ============================================================

@router.get("/responses/{response_id}")
async def retrieve_response(
    response_id: str,
    client: AsyncOpenAI = Depends(get_openai_client),
):
    """Retrieve a stored response."""
    started = time.time()
    response = await client.responses.retrieve(response_id)
    payload = to_jsonable(response)

    _log_passthrough(f"{RESPONSES_ENDPOINT}/{response_id}", {"response_id": response_id}, payload, started)
    return JSONResponse(content=payload)


@router.get("/responses/{response_id}/stream")
async def resume_response_stream(
    request: Request,
    response_id: str,
    starting_after: Optional[int] = Query(default=None, ge=0),
    client: AsyncOpenAI = Depends(get_openai_client),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """
    Resume the event stream of a background response.

    ``starting_after`` skips events up to and including that sequence
    number.
    """
    options: Dict[str, Any] = {}
    if starting_after is not None:
        options["starting_after"] = starting_after
    params = {"response_id": response_id, **options}
    request.state.upstream_params = params

    upstream = await client.responses.retrieve(response_id, stream=True, **options)
    events = normalize_stream(
        upstream,
        dispatcher=dispatcher,
        endpoint=RESUME_ENDPOINT,
        request=params,
    )
    return _sse_response(request, events, upstream)


@router.delete("/responses/{response_id}")
async def delete_response(
    response_id: str,
    client: AsyncOpenAI = Depends(get_openai_client),
):
    """Delete a stored response."""
    started = time.time()
    await client.responses.delete(response_id)
    payload = DeletedResponse(id=response_id).model_dump()

    _log_passthrough(f"{RESPONSES_ENDPOINT}/{response_id}", {"response_id": response_id}, payload, started)
    return JSONResponse(content=payload)


@router.post("/responses/{response_id}/cancel")
async def cancel_response(
    response_id: str,
    client: AsyncOpenAI = Depends(get_openai_client),
):
    """Cancel a background response."""
    started = time.time()
    response = await client.responses.cancel(response_id)
    payload = to_jsonable(response)

    _log_passthrough(f"{RESPONSES_ENDPOINT}/{response_id}/cancel", {"response_id": response_id}, payload, started)
    return JSONResponse(content=payload)


def _log_passthrough(endpoint: str, request: Dict[str, Any], payload: Any, started: float):
    get_interaction_logger().log_openai_interaction({
        "api": "responses",
        "endpoint": endpoint,
        "request": request,
        "response": payload,
        "metadata": {"latency_ms": int((time.time() - started) * 1000)},
    })
