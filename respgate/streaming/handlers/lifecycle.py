"""
respgate - Lifecycle Handlers

Response lifecycle: queued -> in_progress -> completed | incomplete | failed,
plus a standalone ``error`` event that may arrive at any point.
"""

from typing import Any, Dict, Iterator, Optional

from ...core.serialization import as_event_dict, to_jsonable
from ...observability.logging import InteractionLogger
from ...usage.extractor import UsageEstimator
from ..sse import SSEEvent, encode_sse
from ..state import StreamState
from .base import BaseEventHandler, STREAM_ENDPOINT


def _response_of(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    response = data.get("response")
    if isinstance(response, dict):
        return response
    return None


def _lifecycle_field(data: Dict[str, Any], name: str) -> Any:
    """Top-level field of the event, else the same field of its response."""
    value = data.get(name)
    if value is None:
        value = (_response_of(data) or {}).get(name)
    return value


class LifecycleEventHandler(BaseEventHandler):
    """
    Lifecycle events.

    Only ``created`` and ``completed`` touch StreamState; the rest forward
    their sub-payload together with the response id from state.
    """

    def __init__(
        self,
        logger: Optional[InteractionLogger] = None,
        usage: Optional[UsageEstimator] = None,
        endpoint: str = STREAM_ENDPOINT,
    ):
        super().__init__(logger=logger, endpoint=endpoint)
        self.usage = usage or UsageEstimator()

    def handle_response_created(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        response = _response_of(as_event_dict(event)) or {}
        response_id = response.get("id")
        model = response.get("model")

        if response_id and model:
            state.response_id = response_id
            state.model = model

        self._log("response_created", sequence, response={"id": response_id, "model": model})
        yield encode_sse(
            "response_created",
            {"response_id": response_id, "model": model},
            sequence,
        )

    def handle_response_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        """
        Emit the completion snapshot.

        A completed event without a response payload yields nothing and
        skips the usage collaborator entirely.
        """
        response = _response_of(as_event_dict(event))
        if response is None:
            return

        usage = self.usage.extract_usage(response)
        metadata = self.usage.extract_response_metadata(response)
        cost = self.usage.estimate_cost(usage, response.get("model") or state.model)
        latency_ms = state.elapsed_ms()

        state.final_response = response

        self._log(
            "response_completed",
            sequence,
            response=response,
            metadata={
                "latency_ms": latency_ms,
                "tokens_used": usage.get("total_tokens") if usage else None,
                "cost_estimate": cost,
            },
        )

        payload: Dict[str, Any] = {
            "response_id": response.get("id"),
            "output_text": state.full_text,
            "usage": usage,
        }
        payload.update(metadata)
        payload["latency_ms"] = latency_ms
        if cost:
            payload["cost_estimate"] = cost

        yield encode_sse("response_completed", payload, sequence)

    def handle_response_failed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        response = _response_of(data) or {}
        error = _lifecycle_field(data, "error")

        self._log("response_failed", sequence, error=error, response=response or None)
        yield encode_sse(
            "response_failed",
            {"response_id": state.response_id, "error": error},
            sequence,
        )

    def handle_error(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        error = data.get("error")
        if error is None:
            fields = {key: data.get(key) for key in ("code", "message", "param")}
            error = {k: v for k, v in fields.items() if v is not None} or None

        self._log("error", sequence, error=to_jsonable(error))
        yield encode_sse("error", {"error": error}, sequence)

    def handle_response_in_progress(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        self._log("response_in_progress", sequence)
        yield encode_sse("response_in_progress", {"response_id": state.response_id}, sequence)

    def handle_response_queued(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        self._log("response_queued", sequence)
        yield encode_sse("response_queued", {"response_id": state.response_id}, sequence)

    def handle_response_incomplete(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        incomplete_details = _lifecycle_field(as_event_dict(event), "incomplete_details")

        self._log("response_incomplete", sequence, response={"incomplete_details": incomplete_details})
        yield encode_sse(
            "response_incomplete",
            {"response_id": state.response_id, "incomplete_details": incomplete_details},
            sequence,
        )
