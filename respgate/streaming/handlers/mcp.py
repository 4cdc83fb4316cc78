"""
respgate - MCP Handlers

Remote MCP tool calls follow the tool-call delta/done/completed shape,
with a ``failed`` terminal that records nothing on the ToolCallRecord and
a ``list_tools`` discovery sub-protocol.
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict
from ..sse import SSEEvent, encode_sse
from ..state import StreamState, ToolCallType, coerce_delta, resolve_call_id
from .base import BaseEventHandler


class MCPEventHandler(BaseEventHandler):

    def handle_mcp_call_in_progress(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._passthrough(event, sequence, with_call_id=True)

    def handle_mcp_call_delta(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        delta = coerce_delta(data.get("delta"))

        record = state.get_or_create_tool_call(call_id, ToolCallType.MCP)
        record.input += delta

        self._log("mcp_call_delta", sequence, delta=delta)
        yield encode_sse("mcp_call_delta", {"call_id": call_id, "delta": delta}, sequence)

    def handle_mcp_call_done(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        arguments = data.get("arguments")

        self._log("mcp_call_done", sequence, response={"call_id": call_id, "arguments": arguments})
        yield encode_sse("mcp_call_done", {"call_id": call_id, "arguments": arguments}, sequence)

    def handle_mcp_call_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        result = data.get("result", data.get("output"))

        record = state.get_tool_call(call_id)
        if record is not None:
            record.complete(result, store_result=True)

        self._log("mcp_call_completed", sequence, response={"call_id": call_id, "result": result})
        yield encode_sse("mcp_call_completed", {"call_id": call_id, "result": result}, sequence)

    def handle_mcp_call_failed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        error = data.get("error")

        self._log("mcp_call_failed", sequence, error=error)
        yield encode_sse("mcp_call_failed", {"call_id": call_id, "error": error}, sequence)

    def handle_mcp_list_tools(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        """list_tools in_progress / completed / failed: catalog or discovery error."""
        yield from self._passthrough(event, sequence, "tools", "error")
