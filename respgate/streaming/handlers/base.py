"""
respgate - Event Handler Base

Shared plumbing for the category handlers: interaction logging, prefix
passthroughs and the delta/done accumulator pattern.

Handlers are generators called as ``handler(event, state, sequence)``.
They never raise on malformed events and never invent sequence numbers.
"""

from typing import Any, Dict, Iterator, Optional

from ...core.serialization import as_event_dict
from ...observability.logging import InteractionLogger, get_interaction_logger
from ..events import strip_response_prefix
from ..sse import SSEEvent, encode_sse
from ..state import StreamState, coerce_delta, resolve_call_id


STREAM_ENDPOINT = "/v1/responses (stream)"


class BaseEventHandler:
    """Base class for one category of streaming event handlers."""

    def __init__(
        self,
        logger: Optional[InteractionLogger] = None,
        endpoint: str = STREAM_ENDPOINT,
    ):
        self._logger = logger
        self.endpoint = endpoint

    @property
    def logger(self) -> InteractionLogger:
        return self._logger or get_interaction_logger()

    def _log(self, event_type: str, sequence: int, **fields: Any) -> None:
        record: Dict[str, Any] = {
            "api": "responses",
            "endpoint": self.endpoint,
            "event_type": event_type,
            "sequence": sequence,
        }
        record.update({k: v for k, v in fields.items() if v is not None})
        self.logger.log_streaming_event(record)

    def _passthrough(
        self,
        event: Any,
        sequence: int,
        *fields: str,
        with_call_id: bool = False,
    ) -> Iterator[SSEEvent]:
        """
        Forward an event under its prefix-stripped type name.

        Args:
            event: Raw upstream event
            sequence: Caller-owned sequence number
            *fields: Event fields to forward verbatim
            with_call_id: Forward the resolved call id as ``call_id``
        """
        data = as_event_dict(event)
        event_type = data.get("type")
        event_type = event_type if isinstance(event_type, str) else ""

        payload: Dict[str, Any] = {}
        if with_call_id:
            payload["call_id"] = resolve_call_id(data)
        for name in fields:
            payload[name] = data.get(name)

        self._log(event_type, sequence)
        yield encode_sse(strip_response_prefix(event_type), payload, sequence)


class AccumulatingEventHandler(BaseEventHandler):
    """Handlers whose deltas append to one StreamState text field."""

    def _accumulate_delta(
        self,
        event: Any,
        state: StreamState,
        sequence: int,
        field: str,
        sse_event: str,
        extra_fields: tuple = (),
    ) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        delta = coerce_delta(data.get("delta"))
        setattr(state, field, getattr(state, field) + delta)

        payload: Dict[str, Any] = {"delta": delta}
        for name in extra_fields:
            payload[name] = data.get(name)

        self._log(sse_event, sequence, delta=delta)
        yield encode_sse(sse_event, payload, sequence)

    def _emit_done(
        self,
        state: StreamState,
        sequence: int,
        field: str,
        sse_event: str,
        payload_key: str,
    ) -> Iterator[SSEEvent]:
        value = getattr(state, field)
        self._log(sse_event, sequence, response={payload_key: value})
        yield encode_sse(sse_event, {payload_key: value}, sequence)
