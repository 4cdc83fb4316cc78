"""
respgate - Refusal Handlers
"""

from typing import Any, Iterator

from ..sse import SSEEvent
from ..state import StreamState
from .base import AccumulatingEventHandler


class RefusalEventHandler(AccumulatingEventHandler):
    """Model refusals stream like text and land in ``state.refusal``."""

    def handle_refusal_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence, field="refusal", sse_event="refusal_delta",
        )

    def handle_refusal_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence, field="refusal", sse_event="refusal_done", payload_key="refusal",
        )
