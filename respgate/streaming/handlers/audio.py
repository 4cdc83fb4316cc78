"""
respgate - Audio Handlers

Audio deltas are base64 chunks; transcripts are text. Both accumulate.
"""

from typing import Any, Iterator

from ..sse import SSEEvent
from ..state import StreamState
from .base import AccumulatingEventHandler


class AudioEventHandler(AccumulatingEventHandler):

    def handle_audio_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence, field="audio", sse_event="audio_delta",
        )

    def handle_audio_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence, field="audio", sse_event="audio_done", payload_key="audio",
        )

    def handle_audio_transcript_delta(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        yield from self._accumulate_delta(
            event, state, sequence,
            field="audio_transcript",
            sse_event="audio_transcript_delta",
        )

    def handle_audio_transcript_done(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        yield from self._emit_done(
            state, sequence,
            field="audio_transcript",
            sse_event="audio_transcript_done",
            payload_key="transcript",
        )
