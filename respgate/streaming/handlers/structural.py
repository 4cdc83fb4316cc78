"""
respgate - Structural and Unknown Handlers

Output items and content parts are forwarded untouched. The unknown
handler is the dispatcher's fallback for any type it has no entry for.
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict, to_jsonable
from ..sse import SSEEvent, encode_sse
from ..state import StreamState
from .base import BaseEventHandler


class StructuralEventHandler(BaseEventHandler):

    def handle_structural_event(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        """output_item added/done and content_part added/done."""
        yield from self._passthrough(
            event, sequence, "item", "part", "output_index", "content_index", "item_id",
        )

    def handle_unknown_event(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        event_type = data.get("type")

        self._log(
            "unknown_event",
            sequence,
            response={"unknown_type": event_type, "event": to_jsonable(event)},
        )
        yield encode_sse("unknown_event", {"type": event_type}, sequence)
