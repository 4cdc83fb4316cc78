"""
respgate - Streaming Module

Normalizes OpenAI Responses API streaming events into named SSE events:
- Request-scoped stream state and tool call tracking
- Category handlers for every upstream event family
- Static dispatch table with an unknown-event fallback
- Sequence-preserving SSE encoding
"""

from .events import (
    EventCategory,
    StreamEventType,
    strip_response_prefix,
)
from .state import (
    StreamState,
    ToolCallRecord,
    ToolCallStatus,
    ToolCallType,
    UNKNOWN_CALL_ID,
    coerce_delta,
    resolve_call_id,
)
from .sse import (
    SSEEvent,
    encode_sse,
)
from .dispatcher import EventDispatcher
from .normalizer import (
    event_sequence,
    normalize_stream,
)

__all__ = [
    # Events
    "EventCategory",
    "StreamEventType",
    "strip_response_prefix",
    # State
    "StreamState",
    "ToolCallRecord",
    "ToolCallStatus",
    "ToolCallType",
    "UNKNOWN_CALL_ID",
    "coerce_delta",
    "resolve_call_id",
    # SSE
    "SSEEvent",
    "encode_sse",
    # Dispatch
    "EventDispatcher",
    "event_sequence",
    "normalize_stream",
]
