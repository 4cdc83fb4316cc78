"""
respgate - Text Output Handlers
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict
from ..sse import SSEEvent, encode_sse
from ..state import StreamState
from .base import AccumulatingEventHandler


class TextEventHandler(AccumulatingEventHandler):
    """Assistant output text: deltas, the final text and annotations."""

    def handle_text_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence,
            field="full_text",
            sse_event="text_delta",
            extra_fields=("logprobs", "content_index", "item_id", "output_index"),
        )

    def handle_text_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence,
            field="full_text",
            sse_event="text_done",
            payload_key="output_text",
        )

    def handle_text_annotation(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        annotation = as_event_dict(event).get("annotation")
        self._log("text_annotation", sequence, response={"annotation": annotation})
        yield encode_sse("text_annotation", {"annotation": annotation}, sequence)
