"""
respgate - Stream State

Per-request accumulator for one normalized Responses API stream.

One StreamState is created when a stream begins and is passed explicitly
into every handler call. It is never shared between requests.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


UNKNOWN_CALL_ID = "unknown"


class ToolCallType(str, Enum):
    """Kinds of tool invocation tracked during a stream."""
    FUNCTION = "function"
    CODE_INTERPRETER = "code_interpreter"
    COMPUTER_USE = "computer_use"
    MCP = "mcp"
    CUSTOM_TOOL = "custom_tool"


class ToolCallStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class ToolCallRecord:
    """
    One tool invocation seen on the stream.

    ``input`` accumulates argument deltas; ``code`` is only used by the
    code interpreter.
    """
    type: ToolCallType
    input: str = ""
    code: Optional[str] = None
    status: ToolCallStatus = ToolCallStatus.IN_PROGRESS
    result: Any = None

    def complete(self, result: Any = None, store_result: bool = False):
        """Mark the call completed, optionally recording its output."""
        self.status = ToolCallStatus.COMPLETED
        if store_result:
            self.result = result

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "input": self.input,
            "status": self.status.value,
        }
        if self.code is not None:
            data["code"] = self.code
        if self.result is not None:
            data["result"] = self.result
        return data


@dataclass
class StreamState:
    """
    Tracks state during streaming.

    Text-like fields accumulate deltas in arrival order; ``response_id``
    and ``model`` are set by the created event; ``final_response`` by the
    completed event.
    """
    full_text: str = ""
    reasoning: str = ""
    reasoning_summary: str = ""
    refusal: str = ""
    audio: str = ""
    audio_transcript: str = ""

    tool_calls: Dict[str, ToolCallRecord] = field(default_factory=dict)

    response_id: Optional[str] = None
    model: Optional[str] = None

    # Timing
    start_time: float = field(default_factory=time.time)

    final_response: Optional[Dict[str, Any]] = None

    def get_or_create_tool_call(
        self,
        call_id: str,
        call_type: ToolCallType,
    ) -> ToolCallRecord:
        """
        Get the record for a call id, creating it on first sight.

        An existing record keeps its original type even if a later event
        for the same id belongs to another tool family.
        """
        record = self.tool_calls.get(call_id)
        if record is None:
            record = ToolCallRecord(
                type=call_type,
                code="" if call_type == ToolCallType.CODE_INTERPRETER else None,
            )
            self.tool_calls[call_id] = record
        return record

    def get_tool_call(self, call_id: str) -> Optional[ToolCallRecord]:
        return self.tool_calls.get(call_id)

    def elapsed_ms(self) -> int:
        """Milliseconds since the stream started."""
        return int((time.time() - self.start_time) * 1000)


def coerce_delta(value: Any) -> str:
    """
    Turn a raw ``delta`` field into text.

    Strings pass through, booleans become ``"true"``/``"false"``, other
    numbers their ``str()`` form. Anything else (None, dicts, lists) is
    treated as an empty delta.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def resolve_call_id(event: Dict[str, Any]) -> str:
    """Call id of an event, falling back to item_id and then the shared bucket."""
    for key in ("call_id", "item_id"):
        value = event.get(key)
        if isinstance(value, str) and value:
            return value
    return UNKNOWN_CALL_ID
