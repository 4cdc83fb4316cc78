"""Integration tests for event dispatch and stream normalization."""

import json
from typing import Any, AsyncIterator, Iterable, List

import pytest

from respgate.streaming.dispatcher import EventDispatcher
from respgate.streaming.events import EventCategory, StreamEventType
from respgate.streaming.normalizer import event_sequence, normalize_stream
from respgate.streaming.sse import SSEEvent
from respgate.streaming.state import StreamState, ToolCallStatus


async def replay(events: Iterable[Any], fail_with: Exception = None) -> AsyncIterator[Any]:
    for event in events:
        yield event
    if fail_with is not None:
        raise fail_with


async def drain(stream: AsyncIterator[SSEEvent]) -> List[SSEEvent]:
    return [sse async for sse in stream]


def metric(collector, name: str, **labels) -> float:
    value = collector.registry.get_sample_value(name, labels)
    return value or 0.0


# ============================================================
# Dispatcher Tests
# ============================================================

class TestEventDispatcher:
    """Test the static routing table."""

    def test_every_event_type_is_registered(self, dispatcher):
        """Each StreamEventType member has exactly one route."""
        registered = set(dispatcher.registered_types())
        for event_type in StreamEventType:
            assert event_type.value in registered, event_type
        assert len(registered) == len(StreamEventType)

    def test_no_known_type_falls_back_to_unknown(self, dispatcher):
        for event_type in StreamEventType:
            assert dispatcher.category_for(event_type.value) != EventCategory.UNKNOWN

    @pytest.mark.parametrize("event_type,category", [
        ("response.created", EventCategory.LIFECYCLE),
        ("error", EventCategory.LIFECYCLE),
        ("response.output_text.delta", EventCategory.TEXT),
        ("response.reasoning_summary_text.delta", EventCategory.REASONING),
        ("response.function_call_arguments.delta", EventCategory.TOOL_CALLING),
        ("response.web_search_call.searching", EventCategory.TOOL_CALLING),
        ("response.mcp_list_tools.failed", EventCategory.MCP),
        ("response.image_generation_call.partial_image", EventCategory.IMAGE),
        ("response.audio.transcript.delta", EventCategory.AUDIO),
        ("response.refusal.done", EventCategory.REFUSAL),
        ("response.computer_use_call.action.delta", EventCategory.COMPUTER_USE),
        ("response.content_part.done", EventCategory.STRUCTURAL),
    ])
    def test_categories(self, dispatcher, event_type, category):
        assert dispatcher.category_for(event_type) == category

    @pytest.mark.parametrize("event_type", ["response.future_event", "", None, 42])
    def test_unregistered_types_are_unknown(self, dispatcher, event_type):
        assert dispatcher.category_for(event_type) == EventCategory.UNKNOWN

    def test_dispatch_unknown_event(self, dispatcher, state):
        events = list(dispatcher.dispatch({"type": "response.future_event"}, state, 4))

        assert [e.event for e in events] == ["unknown_event"]
        assert events[0].payload() == {"type": "response.future_event", "sequence": 4}

    @pytest.mark.parametrize("garbage", [None, 42, "text", []])
    def test_dispatch_garbage(self, dispatcher, state, garbage):
        """Malformed events go to the unknown handler without raising."""
        events = list(dispatcher.dispatch(garbage, state, 0))
        assert [e.event for e in events] == ["unknown_event"]

    def test_sequence_passed_unchanged(self, dispatcher, state):
        for sequence in (-1, 0, 2 ** 53 - 1):
            event = list(dispatcher.dispatch(
                {"type": "response.output_text.delta", "delta": "x"}, state, sequence,
            ))[0]
            assert event.sequence == sequence
            assert json.loads(event.data)["sequence"] == sequence

    def test_mcp_flow(self, dispatcher, state):
        """An MCP call is tracked from delta to completion."""
        for event in (
            {"type": "response.mcp_call.in_progress", "item_id": "mcp_1"},
            {"type": "response.mcp_call_arguments.delta", "item_id": "mcp_1", "delta": "{}"},
            {"type": "response.mcp_call_arguments.done", "item_id": "mcp_1", "arguments": "{}"},
            {"type": "response.mcp_call.completed", "item_id": "mcp_1", "result": "ok"},
        ):
            list(dispatcher.dispatch(event, state, 0))

        record = state.tool_calls["mcp_1"]
        assert record.status == ToolCallStatus.COMPLETED
        assert record.result == "ok"


# ============================================================
# Normalizer Tests
# ============================================================

class TestEventSequence:
    """Test sequence extraction from raw events."""

    def test_dict_sequence(self):
        assert event_sequence({"sequence_number": 7}) == 7

    def test_attribute_sequence(self):
        class Event:
            sequence_number = 11
        assert event_sequence(Event()) == 11

    @pytest.mark.parametrize("event", [{}, None, {"sequence_number": "3"}, {"sequence_number": True}])
    def test_missing_or_malformed(self, event):
        assert event_sequence(event) == 0


class TestNormalizeStream:
    """Test end-to-end normalization of an upstream stream."""

    @pytest.mark.asyncio
    async def test_count_to_three(self, dispatcher, interaction_logger, count_to_three_events):
        """A simple text response produces ordered, named events."""
        state = StreamState()
        events = await drain(normalize_stream(
            replay(count_to_three_events),
            dispatcher=dispatcher,
            state=state,
            interaction_logger=interaction_logger,
            request={"model": "gpt-4o", "input": "Count to 3"},
        ))

        assert [e.event for e in events] == [
            "response_created",
            "response_in_progress",
            "text_delta",
            "text_delta",
            "text_delta",
            "text_done",
            "response_completed",
        ]
        assert [e.sequence for e in events] == list(range(7))
        assert events[-1].payload()["output_text"] == "1, 2, 3"
        assert state.full_text == "1, 2, 3"
        assert state.response_id == "resp_123"
        assert state.final_response["status"] == "completed"

    @pytest.mark.asyncio
    async def test_stream_start_logged_with_request(self, dispatcher, interaction_logger, count_to_three_events):
        await drain(normalize_stream(
            replay(count_to_three_events),
            dispatcher=dispatcher,
            interaction_logger=interaction_logger,
            request={"model": "gpt-4o", "input": "Count to 3"},
        ))

        first = interaction_logger.log_streaming_event.call_args_list[0].args[0]
        assert first["event_type"] == "stream_start"
        assert first["sequence"] == 0
        assert first["request"] == {"model": "gpt-4o", "input": "Count to 3"}

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, dispatcher, interaction_logger, count_to_three_events, metrics_collector):
        await drain(normalize_stream(
            replay(count_to_three_events),
            dispatcher=dispatcher,
            interaction_logger=interaction_logger,
        ))

        assert metric(
            metrics_collector, "respgate_stream_events_total", category="text", event="text_delta",
        ) == 3
        assert metric(
            metrics_collector, "respgate_stream_duration_seconds_count", outcome="completed",
        ) == 1
        assert metric(
            metrics_collector, "respgate_tokens_total", model="gpt-4o", type="input",
        ) == 12
        assert metric(
            metrics_collector, "respgate_active_streams", endpoint="/v1/responses (stream)",
        ) == 0

    @pytest.mark.asyncio
    async def test_upstream_order_preserved(self, dispatcher, interaction_logger):
        """Out-of-order sequence numbers are not re-sorted."""
        raw = [
            {"type": "response.output_text.delta", "sequence_number": 5, "delta": "b"},
            {"type": "response.output_text.delta", "sequence_number": 2, "delta": "a"},
        ]
        state = StreamState()
        events = await drain(normalize_stream(
            replay(raw), dispatcher=dispatcher, state=state, interaction_logger=interaction_logger,
        ))

        assert [e.sequence for e in events] == [5, 2]
        assert state.full_text == "ba"

    @pytest.mark.asyncio
    async def test_mid_stream_error(self, dispatcher, interaction_logger, metrics_collector):
        """A failure yields a terminal error event and is re-raised."""
        raw = [{"type": "response.output_text.delta", "sequence_number": 1, "delta": "partial"}]
        received: List[SSEEvent] = []

        with pytest.raises(ConnectionResetError):
            async for sse in normalize_stream(
                replay(raw, fail_with=ConnectionResetError("connection lost")),
                dispatcher=dispatcher,
                interaction_logger=interaction_logger,
            ):
                received.append(sse)

        assert [e.event for e in received] == ["text_delta", "error"]
        assert received[-1].payload() == {"error": "connection lost", "sequence": 0}

        error_record = interaction_logger.log_streaming_event.call_args_list[-1].args[0]
        assert error_record["event_type"] == "stream_error"
        assert error_record["error"]["message"] == "connection lost"
        assert "ConnectionResetError" in error_record["error"]["original_error"]
        assert metric(
            metrics_collector, "respgate_stream_duration_seconds_count", outcome="failed",
        ) == 1

    @pytest.mark.asyncio
    async def test_error_without_message(self, dispatcher, interaction_logger):
        received: List[SSEEvent] = []
        with pytest.raises(RuntimeError):
            async for sse in normalize_stream(
                replay([], fail_with=RuntimeError()),
                dispatcher=dispatcher,
                interaction_logger=interaction_logger,
            ):
                received.append(sse)

        assert received[0].payload() == {"error": "Unknown error", "sequence": 0}

    @pytest.mark.asyncio
    async def test_default_dispatcher_and_state(self, count_to_three_events, interaction_log_dir):
        """Without collaborators the global interaction log is used."""
        events = await drain(normalize_stream(replay(count_to_three_events)))

        assert events[-1].event == "response_completed"
        log_files = list(interaction_log_dir.glob("*/responses.log"))
        assert len(log_files) == 1
        assert "stream_start" in log_files[0].read_text(encoding="utf-8")
