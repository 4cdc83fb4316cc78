"""
respgate - Stream Normalizer

Drives one upstream Responses API stream through the dispatcher.

normalize_stream is the only owner of the sequence number: each event's
``sequence_number`` (or 0) is handed to the handlers unchanged, so the
output is ordered exactly as the upstream delivered it.

On a mid-stream failure a terminal ``error`` event is yielded with
sequence 0 and the exception is re-raised for the transport to handle.
"""

import time
from typing import Any, AsyncIterator, Dict, Optional

from opentelemetry.trace import Status, StatusCode

from ..core.serialization import as_event_dict, to_jsonable
from ..observability.logging import InteractionLogger, get_interaction_logger, get_logger
from ..observability.metrics import get_metrics
from ..observability.tracing import get_tracing_manager
from .dispatcher import EventDispatcher
from .handlers import STREAM_ENDPOINT
from .sse import SSEEvent, encode_sse
from .state import StreamState


logger = get_logger(__name__)


def event_sequence(event: Any) -> int:
    """Upstream sequence_number of an event, or 0 when absent or malformed."""
    value = getattr(event, "sequence_number", None)
    if value is None:
        value = as_event_dict(event).get("sequence_number")
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


async def normalize_stream(
    events: AsyncIterator[Any],
    dispatcher: Optional[EventDispatcher] = None,
    state: Optional[StreamState] = None,
    interaction_logger: Optional[InteractionLogger] = None,
    endpoint: str = STREAM_ENDPOINT,
    request: Optional[Dict[str, Any]] = None,
) -> AsyncIterator[SSEEvent]:
    """
    Normalize an upstream event stream into SSE events.

    Args:
        events: Async iterable of raw upstream events
        dispatcher: Routing table; a default one is built when omitted
        state: Stream state; a fresh one is created when omitted
        interaction_logger: Sink for stream_start / stream_error records
        endpoint: Endpoint label for log records
        request: Upstream request parameters recorded with stream_start

    Yields:
        SSEEvent objects in upstream order
    """
    interactions = interaction_logger or get_interaction_logger()
    dispatcher = dispatcher or EventDispatcher(logger=interactions, endpoint=endpoint)
    state = state or StreamState()
    metrics = get_metrics()
    span = get_tracing_manager().begin_span("responses.stream", {"respgate.endpoint": endpoint})

    started = time.time()
    event_count = 0
    outcome = "completed"

    start_record: Dict[str, Any] = {
        "api": "responses",
        "endpoint": endpoint,
        "event_type": "stream_start",
        "sequence": 0,
    }
    if request is not None:
        start_record["request"] = to_jsonable(request)
    interactions.log_streaming_event(start_record)

    try:
        with metrics.track_active_stream(endpoint):
            async for event in events:
                sequence = event_sequence(event)
                category = dispatcher.category_for(as_event_dict(event).get("type"))

                for sse in dispatcher.dispatch(event, state, sequence):
                    event_count += 1
                    metrics.record_stream_event(category.value, sse.event)
                    yield sse

    except GeneratorExit:
        outcome = "aborted"
        raise

    except Exception as e:
        outcome = "failed"
        message = str(e) or "Unknown error"
        latency_ms = int((time.time() - started) * 1000)

        interactions.log_streaming_event({
            "api": "responses",
            "endpoint": endpoint,
            "event_type": "stream_error",
            "sequence": 0,
            "error": {"message": message, "original_error": repr(e)},
            "metadata": {"latency_ms": latency_ms},
        })
        logger.warning("Stream failed", endpoint=endpoint, error=message, events=event_count)

        span.record_exception(e)
        span.set_status(Status(StatusCode.ERROR, message))

        yield encode_sse("error", {"error": message}, 0)
        raise

    finally:
        duration = time.time() - started
        metrics.record_stream_finished(outcome, duration)

        if state.final_response is not None:
            usage = dispatcher.lifecycle.usage.extract_usage(state.final_response)
            model = state.final_response.get("model") or state.model or "unknown"
            cost = dispatcher.lifecycle.usage.estimate_cost(usage, model)
            metrics.record_usage(model, usage, cost)

        span.set_attribute("respgate.events", event_count)
        span.set_attribute("respgate.outcome", outcome)
        if state.response_id:
            span.set_attribute("respgate.response_id", state.response_id)
        if state.model:
            span.set_attribute("respgate.model", state.model)
        span.end()
