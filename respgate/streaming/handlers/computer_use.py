"""
respgate - Computer Use Handlers

Action deltas are structured (mouse_move, click, type, key, screenshot)
and are forwarded whole rather than text-accumulated. Screenshot capture
arrives through the output item added/done pair.
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict
from ..sse import SSEEvent, encode_sse
from ..state import StreamState, ToolCallType, resolve_call_id
from .base import BaseEventHandler


class ComputerUseEventHandler(BaseEventHandler):

    def handle_action_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        action = data.get("delta")

        state.get_or_create_tool_call(call_id, ToolCallType.COMPUTER_USE)

        self._log("computer_use_action_delta", sequence)
        yield encode_sse("computer_use_action_delta", {"call_id": call_id, "action": action}, sequence)

    def handle_action_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        action = data.get("action")

        self._log("computer_use_action_done", sequence, response={"action": action})
        yield encode_sse("computer_use_action_done", {"call_id": call_id, "action": action}, sequence)

    def handle_progress(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._passthrough(event, sequence, with_call_id=True)

    def handle_output_item_added(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)

        self._log("computer_use_output_item_added", sequence)
        yield encode_sse(
            "computer_use_output_item_added",
            {"call_id": call_id, "output_index": data.get("output_index")},
            sequence,
        )

    def handle_output_item_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        output = data.get("output")
        output_fields = output if isinstance(output, dict) else {}

        self._log(
            "computer_use_output_item_done",
            sequence,
            response={
                "type": output_fields.get("type"),
                "has_image": bool(output_fields.get("image_url")),
            },
        )
        yield encode_sse("computer_use_output_item_done", {"call_id": call_id, "output": output}, sequence)

    def handle_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        output = data.get("output")

        record = state.get_tool_call(call_id)
        if record is not None:
            record.complete(output, store_result=True)

        self._log("computer_use_completed", sequence, response={"call_id": call_id, "output": output})
        yield encode_sse("computer_use_completed", {"call_id": call_id, "output": output}, sequence)
