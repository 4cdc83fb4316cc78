"""
respgate - Event Dispatcher

Static routing table from upstream event type to (category, handler).
This is the one place a new upstream event type has to be registered;
anything missing from the table is routed to the unknown handler.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..core.serialization import as_event_dict
from ..observability.logging import InteractionLogger
from ..usage.extractor import UsageEstimator
from .events import EventCategory, StreamEventType as T
from .handlers import (
    STREAM_ENDPOINT,
    AudioEventHandler,
    ComputerUseEventHandler,
    ImageEventHandler,
    LifecycleEventHandler,
    MCPEventHandler,
    ReasoningEventHandler,
    RefusalEventHandler,
    StructuralEventHandler,
    TextEventHandler,
    ToolCallingEventHandler,
)
from .sse import SSEEvent
from .state import StreamState


Handler = Callable[[Any, StreamState, int], Iterator[SSEEvent]]
Route = Tuple[EventCategory, Handler]


class EventDispatcher:
    """
    Routes raw upstream events to category handlers.

    Usage:
        dispatcher = EventDispatcher()
        state = StreamState()

        for sse in dispatcher.dispatch(event, state, sequence):
            yield sse.to_sse()
    """

    def __init__(
        self,
        logger: Optional[InteractionLogger] = None,
        usage: Optional[UsageEstimator] = None,
        endpoint: str = STREAM_ENDPOINT,
    ):
        self.lifecycle = LifecycleEventHandler(logger=logger, usage=usage, endpoint=endpoint)
        self.text = TextEventHandler(logger=logger, endpoint=endpoint)
        self.reasoning = ReasoningEventHandler(logger=logger, endpoint=endpoint)
        self.refusal = RefusalEventHandler(logger=logger, endpoint=endpoint)
        self.audio = AudioEventHandler(logger=logger, endpoint=endpoint)
        self.tool_calls = ToolCallingEventHandler(logger=logger, endpoint=endpoint)
        self.mcp = MCPEventHandler(logger=logger, endpoint=endpoint)
        self.image = ImageEventHandler(logger=logger, endpoint=endpoint)
        self.computer_use = ComputerUseEventHandler(logger=logger, endpoint=endpoint)
        self.structural = StructuralEventHandler(logger=logger, endpoint=endpoint)

        self._routes: Dict[str, Route] = self._build_routes()

    def _build_routes(self) -> Dict[str, Route]:
        C = EventCategory
        lifecycle = self.lifecycle
        tools = self.tool_calls
        cu = self.computer_use

        table: Dict[T, Route] = {
            # Lifecycle
            T.RESPONSE_CREATED: (C.LIFECYCLE, lifecycle.handle_response_created),
            T.RESPONSE_QUEUED: (C.LIFECYCLE, lifecycle.handle_response_queued),
            T.RESPONSE_IN_PROGRESS: (C.LIFECYCLE, lifecycle.handle_response_in_progress),
            T.RESPONSE_COMPLETED: (C.LIFECYCLE, lifecycle.handle_response_completed),
            T.RESPONSE_INCOMPLETE: (C.LIFECYCLE, lifecycle.handle_response_incomplete),
            T.RESPONSE_FAILED: (C.LIFECYCLE, lifecycle.handle_response_failed),
            T.ERROR: (C.LIFECYCLE, lifecycle.handle_error),

            # Text
            T.TEXT_DELTA: (C.TEXT, self.text.handle_text_delta),
            T.TEXT_DONE: (C.TEXT, self.text.handle_text_done),
            T.TEXT_ANNOTATION_ADDED: (C.TEXT, self.text.handle_text_annotation),

            # Reasoning
            T.REASONING_TEXT_DELTA: (C.REASONING, self.reasoning.handle_reasoning_delta),
            T.REASONING_TEXT_DONE: (C.REASONING, self.reasoning.handle_reasoning_done),
            T.REASONING_SUMMARY_PART_ADDED: (C.REASONING, self.reasoning.handle_reasoning_summary_part),
            T.REASONING_SUMMARY_PART_DONE: (C.REASONING, self.reasoning.handle_reasoning_summary_part),
            T.REASONING_SUMMARY_TEXT_DELTA: (C.REASONING, self.reasoning.handle_reasoning_summary_delta),
            T.REASONING_SUMMARY_TEXT_DONE: (C.REASONING, self.reasoning.handle_reasoning_summary_done),

            # Function calls
            T.FUNCTION_CALL_ARGUMENTS_DELTA: (C.TOOL_CALLING, tools.handle_function_call_delta),
            T.FUNCTION_CALL_ARGUMENTS_DONE: (C.TOOL_CALLING, tools.handle_function_call_done),

            # Code interpreter
            T.CODE_INTERPRETER_IN_PROGRESS: (C.TOOL_CALLING, tools.handle_code_interpreter_progress),
            T.CODE_INTERPRETER_GENERATING: (C.TOOL_CALLING, tools.handle_code_interpreter_progress),
            T.CODE_INTERPRETER_INTERPRETING: (C.TOOL_CALLING, tools.handle_code_interpreter_progress),
            T.CODE_INTERPRETER_COMPLETED: (C.TOOL_CALLING, tools.handle_code_interpreter_completed),
            T.CODE_INTERPRETER_CODE_DELTA: (C.TOOL_CALLING, tools.handle_code_interpreter_code_delta),
            T.CODE_INTERPRETER_CODE_DONE: (C.TOOL_CALLING, tools.handle_code_interpreter_code_done),

            # File / web search
            T.FILE_SEARCH_IN_PROGRESS: (C.TOOL_CALLING, tools.handle_search_progress),
            T.FILE_SEARCH_SEARCHING: (C.TOOL_CALLING, tools.handle_search_progress),
            T.FILE_SEARCH_COMPLETED: (C.TOOL_CALLING, tools.handle_file_search_completed),
            T.WEB_SEARCH_IN_PROGRESS: (C.TOOL_CALLING, tools.handle_search_progress),
            T.WEB_SEARCH_SEARCHING: (C.TOOL_CALLING, tools.handle_search_progress),
            T.WEB_SEARCH_COMPLETED: (C.TOOL_CALLING, tools.handle_web_search_completed),

            # Custom tools
            T.CUSTOM_TOOL_INPUT_DELTA: (C.TOOL_CALLING, tools.handle_custom_tool_delta),
            T.CUSTOM_TOOL_INPUT_DONE: (C.TOOL_CALLING, tools.handle_custom_tool_done),

            # MCP
            T.MCP_CALL_IN_PROGRESS: (C.MCP, self.mcp.handle_mcp_call_in_progress),
            T.MCP_CALL_ARGUMENTS_DELTA: (C.MCP, self.mcp.handle_mcp_call_delta),
            T.MCP_CALL_ARGUMENTS_DONE: (C.MCP, self.mcp.handle_mcp_call_done),
            T.MCP_CALL_COMPLETED: (C.MCP, self.mcp.handle_mcp_call_completed),
            T.MCP_CALL_FAILED: (C.MCP, self.mcp.handle_mcp_call_failed),
            T.MCP_LIST_TOOLS_IN_PROGRESS: (C.MCP, self.mcp.handle_mcp_list_tools),
            T.MCP_LIST_TOOLS_COMPLETED: (C.MCP, self.mcp.handle_mcp_list_tools),
            T.MCP_LIST_TOOLS_FAILED: (C.MCP, self.mcp.handle_mcp_list_tools),

            # Image generation
            T.IMAGE_GEN_IN_PROGRESS: (C.IMAGE, self.image.handle_image_gen_progress),
            T.IMAGE_GEN_GENERATING: (C.IMAGE, self.image.handle_image_gen_progress),
            T.IMAGE_GEN_PARTIAL_IMAGE: (C.IMAGE, self.image.handle_image_gen_partial),
            T.IMAGE_GEN_COMPLETED: (C.IMAGE, self.image.handle_image_gen_completed),

            # Audio
            T.AUDIO_DELTA: (C.AUDIO, self.audio.handle_audio_delta),
            T.AUDIO_DONE: (C.AUDIO, self.audio.handle_audio_done),
            T.AUDIO_TRANSCRIPT_DELTA: (C.AUDIO, self.audio.handle_audio_transcript_delta),
            T.AUDIO_TRANSCRIPT_DONE: (C.AUDIO, self.audio.handle_audio_transcript_done),

            # Refusal
            T.REFUSAL_DELTA: (C.REFUSAL, self.refusal.handle_refusal_delta),
            T.REFUSAL_DONE: (C.REFUSAL, self.refusal.handle_refusal_done),

            # Computer use
            T.COMPUTER_USE_IN_PROGRESS: (C.COMPUTER_USE, cu.handle_progress),
            T.COMPUTER_USE_ACTION_DELTA: (C.COMPUTER_USE, cu.handle_action_delta),
            T.COMPUTER_USE_ACTION_DONE: (C.COMPUTER_USE, cu.handle_action_done),
            T.COMPUTER_USE_OUTPUT_ITEM_ADDED: (C.COMPUTER_USE, cu.handle_output_item_added),
            T.COMPUTER_USE_OUTPUT_ITEM_DONE: (C.COMPUTER_USE, cu.handle_output_item_done),
            T.COMPUTER_USE_COMPLETED: (C.COMPUTER_USE, cu.handle_completed),

            # Structural
            T.OUTPUT_ITEM_ADDED: (C.STRUCTURAL, self.structural.handle_structural_event),
            T.OUTPUT_ITEM_DONE: (C.STRUCTURAL, self.structural.handle_structural_event),
            T.CONTENT_PART_ADDED: (C.STRUCTURAL, self.structural.handle_structural_event),
            T.CONTENT_PART_DONE: (C.STRUCTURAL, self.structural.handle_structural_event),
        }
        return {event_type.value: route for event_type, route in table.items()}

    def resolve(self, event_type: Any) -> Route:
        """Route for an event type; unregistered types go to the unknown handler."""
        if isinstance(event_type, str) and event_type in self._routes:
            return self._routes[event_type]
        return EventCategory.UNKNOWN, self.structural.handle_unknown_event

    def category_for(self, event_type: Any) -> EventCategory:
        return self.resolve(event_type)[0]

    def registered_types(self) -> List[str]:
        return list(self._routes)

    def dispatch(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        """
        Normalize one upstream event.

        Args:
            event: Raw upstream event (SDK model, dict, or anything else)
            state: Request-scoped stream state
            sequence: Sequence number owned by the caller

        Yields:
            SSEEvent objects carrying ``sequence`` unchanged
        """
        event_type = as_event_dict(event).get("type")
        _, handler = self.resolve(event_type)
        yield from handler(event, state, sequence)
