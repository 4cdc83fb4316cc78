"""
respgate - SSE Encoding

Normalized events travel as ``event: <name>`` / ``data: <json>`` frames.
The JSON payload always repeats the event's sequence number.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict

from ..core.serialization import to_jsonable


@dataclass(frozen=True)
class SSEEvent:
    """One outbound Server-Sent Event."""
    event: str
    data: str
    sequence: int

    def to_sse(self) -> str:
        """Convert to SSE wire format."""
        return f"event: {self.event}\ndata: {self.data}\n\n"

    def payload(self) -> Dict[str, Any]:
        """Decoded data payload."""
        return json.loads(self.data)


def encode_sse(event: str, payload: Dict[str, Any], sequence: int) -> SSEEvent:
    """
    Build an SSEEvent from a handler payload.

    Fields whose value is None are omitted; ``sequence`` is always written
    last and overrides any same-named payload field.

    Args:
        event: SSE event name
        payload: Event data; values may be SDK models or plain structures
        sequence: Caller-owned sequence number

    Returns:
        SSEEvent whose decoded data carries the same sequence
    """
    body = {
        key: to_jsonable(value)
        for key, value in payload.items()
        if value is not None and key != "sequence"
    }
    body["sequence"] = sequence
    return SSEEvent(
        event=event,
        data=json.dumps(body, ensure_ascii=False),
        sequence=sequence,
    )
