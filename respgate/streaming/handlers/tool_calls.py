"""
respgate - Tool Calling Handlers

Function calls, code interpreter, file search, web search and custom
tools. Deltas lazily create a ToolCallRecord for the call id; done and
completed events flip it to completed. A done/completed event for an
unseen call id changes no state but is still forwarded.

Progress sub-phases (in_progress, searching, interpreting, ...) are
forwarded under the upstream type with ``response.`` removed, so new
sub-phases need no handler changes.
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict
from ..sse import SSEEvent, encode_sse
from ..state import StreamState, ToolCallType, coerce_delta, resolve_call_id
from .base import BaseEventHandler


class ToolCallingEventHandler(BaseEventHandler):

    # ============================================================
    # Function calls
    # ============================================================

    def handle_function_call_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        delta = coerce_delta(data.get("delta"))

        record = state.get_or_create_tool_call(call_id, ToolCallType.FUNCTION)
        record.input += delta

        self._log("function_call_delta", sequence, delta=delta)
        yield encode_sse(
            "function_call_delta",
            {"call_id": call_id, "delta": delta, "snapshot": record.input},
            sequence,
        )

    def handle_function_call_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        arguments = data.get("arguments")

        record = state.get_tool_call(call_id)
        if record is not None:
            record.complete()

        self._log("function_call_done", sequence, response={"call_id": call_id, "arguments": arguments})
        yield encode_sse(
            "function_call_done",
            {"call_id": call_id, "arguments": arguments},
            sequence,
        )

    # ============================================================
    # Code interpreter
    # ============================================================

    def handle_code_interpreter_progress(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        yield from self._passthrough(event, sequence, with_call_id=True)

    def handle_code_interpreter_code_delta(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        delta = coerce_delta(data.get("delta"))

        record = state.get_or_create_tool_call(call_id, ToolCallType.CODE_INTERPRETER)
        record.code = (record.code or "") + delta

        self._log("code_interpreter_code_delta", sequence, delta=delta)
        yield encode_sse(
            "code_interpreter_code_delta",
            {"call_id": call_id, "delta": delta},
            sequence,
        )

    def handle_code_interpreter_code_done(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        code = data.get("code")

        self._log("code_interpreter_code_done", sequence, response={"call_id": call_id, "code": code})
        yield encode_sse(
            "code_interpreter_code_done",
            {"call_id": call_id, "code": code},
            sequence,
        )

    def handle_code_interpreter_completed(
        self, event: Any, state: StreamState, sequence: int
    ) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        output = data.get("output")

        record = state.get_tool_call(call_id)
        if record is not None:
            record.complete(output, store_result=True)

        self._log("code_interpreter_completed", sequence, response={"call_id": call_id, "output": output})
        yield encode_sse(
            "code_interpreter_completed",
            {"call_id": call_id, "output": output},
            sequence,
        )

    # ============================================================
    # File search / web search
    # ============================================================

    def handle_search_progress(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        """Search in_progress / searching phases for both search tools."""
        yield from self._passthrough(event, sequence, with_call_id=True)

    def handle_file_search_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._search_completed(event, sequence, "file_search_completed")

    def handle_web_search_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._search_completed(event, sequence, "web_search_completed")

    def _search_completed(self, event: Any, sequence: int, sse_event: str) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        results = data.get("results")

        self._log(sse_event, sequence, response={"call_id": call_id, "results": results})
        yield encode_sse(sse_event, {"call_id": call_id, "results": results}, sequence)

    # ============================================================
    # Custom tools
    # ============================================================

    def handle_custom_tool_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        delta = coerce_delta(data.get("delta"))

        record = state.get_or_create_tool_call(call_id, ToolCallType.CUSTOM_TOOL)
        record.input += delta

        self._log("custom_tool_delta", sequence, delta=delta)
        yield encode_sse("custom_tool_delta", {"call_id": call_id, "delta": delta}, sequence)

    def handle_custom_tool_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        tool_input = data.get("input")

        record = state.get_tool_call(call_id)
        if record is not None:
            record.complete()

        self._log("custom_tool_done", sequence, response={"call_id": call_id, "input": tool_input})
        yield encode_sse("custom_tool_done", {"call_id": call_id, "input": tool_input}, sequence)
