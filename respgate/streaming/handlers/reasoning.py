"""
respgate - Reasoning Handlers

Reasoning text and reasoning summaries accumulate separately.
"""

from typing import Any, Iterator

from ..sse import SSEEvent
from ..state import StreamState
from .base import AccumulatingEventHandler


class ReasoningEventHandler(AccumulatingEventHandler):

    def handle_reasoning_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence, field="reasoning", sse_event="reasoning_delta",
        )

    def handle_reasoning_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence,
            field="reasoning",
            sse_event="reasoning_done",
            payload_key="reasoning_text",
        )

    def handle_reasoning_summary_delta(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence,
            field="reasoning_summary",
            sse_event="reasoning_summary_delta",
        )

    def handle_reasoning_summary_done(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence,
            field="reasoning_summary",
            sse_event="reasoning_summary_done",
            payload_key="reasoning_summary",
        )

    def handle_reasoning_summary_part(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        """Summary part added/done: forwarded under the upstream name."""
        yield from self._passthrough(event, sequence, "part")
