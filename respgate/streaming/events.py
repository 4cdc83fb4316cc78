"""
respgate - Stream Event Types

Upstream Responses API event type strings and the categories they are
normalized under. Every member of StreamEventType must be registered in
the dispatcher table.
"""

from enum import Enum


RESPONSE_PREFIX = "response."


class EventCategory(str, Enum):
    """Handler groups for upstream events."""
    LIFECYCLE = "lifecycle"
    TEXT = "text"
    REASONING = "reasoning"
    TOOL_CALLING = "tool_calling"
    IMAGE = "image"
    AUDIO = "audio"
    MCP = "mcp"
    REFUSAL = "refusal"
    STRUCTURAL = "structural"
    COMPUTER_USE = "computer_use"
    UNKNOWN = "unknown"


class StreamEventType(str, Enum):
    """Upstream streaming event types."""

    # Lifecycle
    RESPONSE_CREATED = "response.created"
    RESPONSE_QUEUED = "response.queued"
    RESPONSE_IN_PROGRESS = "response.in_progress"
    RESPONSE_COMPLETED = "response.completed"
    RESPONSE_INCOMPLETE = "response.incomplete"
    RESPONSE_FAILED = "response.failed"
    ERROR = "error"

    # Text output
    TEXT_DELTA = "response.output_text.delta"
    TEXT_DONE = "response.output_text.done"
    TEXT_ANNOTATION_ADDED = "response.output_text.annotation.added"

    # Reasoning
    REASONING_TEXT_DELTA = "response.reasoning_text.delta"
    REASONING_TEXT_DONE = "response.reasoning_text.done"
    REASONING_SUMMARY_PART_ADDED = "response.reasoning_summary_part.added"
    REASONING_SUMMARY_PART_DONE = "response.reasoning_summary_part.done"
    REASONING_SUMMARY_TEXT_DELTA = "response.reasoning_summary_text.delta"
    REASONING_SUMMARY_TEXT_DONE = "response.reasoning_summary_text.done"

    # Function calls
    FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"

    # Code interpreter
    CODE_INTERPRETER_IN_PROGRESS = "response.code_interpreter_call.in_progress"
    CODE_INTERPRETER_GENERATING = "response.code_interpreter_call.generating"
    CODE_INTERPRETER_INTERPRETING = "response.code_interpreter_call.interpreting"
    CODE_INTERPRETER_COMPLETED = "response.code_interpreter_call.completed"
    CODE_INTERPRETER_CODE_DELTA = "response.code_interpreter_call_code.delta"
    CODE_INTERPRETER_CODE_DONE = "response.code_interpreter_call_code.done"

    # File search
    FILE_SEARCH_IN_PROGRESS = "response.file_search_call.in_progress"
    FILE_SEARCH_SEARCHING = "response.file_search_call.searching"
    FILE_SEARCH_COMPLETED = "response.file_search_call.completed"

    # Web search
    WEB_SEARCH_IN_PROGRESS = "response.web_search_call.in_progress"
    WEB_SEARCH_SEARCHING = "response.web_search_call.searching"
    WEB_SEARCH_COMPLETED = "response.web_search_call.completed"

    # Custom tools
    CUSTOM_TOOL_INPUT_DELTA = "response.custom_tool_call_input.delta"
    CUSTOM_TOOL_INPUT_DONE = "response.custom_tool_call_input.done"

    # MCP
    MCP_CALL_IN_PROGRESS = "response.mcp_call.in_progress"
    MCP_CALL_ARGUMENTS_DELTA = "response.mcp_call_arguments.delta"
    MCP_CALL_ARGUMENTS_DONE = "response.mcp_call_arguments.done"
    MCP_CALL_COMPLETED = "response.mcp_call.completed"
    MCP_CALL_FAILED = "response.mcp_call.failed"
    MCP_LIST_TOOLS_IN_PROGRESS = "response.mcp_list_tools.in_progress"
    MCP_LIST_TOOLS_COMPLETED = "response.mcp_list_tools.completed"
    MCP_LIST_TOOLS_FAILED = "response.mcp_list_tools.failed"

    # Image generation
    IMAGE_GEN_IN_PROGRESS = "response.image_generation_call.in_progress"
    IMAGE_GEN_GENERATING = "response.image_generation_call.generating"
    IMAGE_GEN_PARTIAL_IMAGE = "response.image_generation_call.partial_image"
    IMAGE_GEN_COMPLETED = "response.image_generation_call.completed"

    # Audio
    AUDIO_DELTA = "response.audio.delta"
    AUDIO_DONE = "response.audio.done"
    AUDIO_TRANSCRIPT_DELTA = "response.audio.transcript.delta"
    AUDIO_TRANSCRIPT_DONE = "response.audio.transcript.done"

    # Refusal
    REFUSAL_DELTA = "response.refusal.delta"
    REFUSAL_DONE = "response.refusal.done"

    # Computer use
    COMPUTER_USE_IN_PROGRESS = "response.computer_use_call.in_progress"
    COMPUTER_USE_ACTION_DELTA = "response.computer_use_call.action.delta"
    COMPUTER_USE_ACTION_DONE = "response.computer_use_call.action.done"
    COMPUTER_USE_OUTPUT_ITEM_ADDED = "response.computer_use_call.output_item.added"
    COMPUTER_USE_OUTPUT_ITEM_DONE = "response.computer_use_call.output_item.done"
    COMPUTER_USE_COMPLETED = "response.computer_use_call.completed"

    # Structural
    OUTPUT_ITEM_ADDED = "response.output_item.added"
    OUTPUT_ITEM_DONE = "response.output_item.done"
    CONTENT_PART_ADDED = "response.content_part.added"
    CONTENT_PART_DONE = "response.content_part.done"


def strip_response_prefix(event_type: str) -> str:
    """
    Derive an SSE event name from an upstream type.

    Only a leading ``response.`` is removed, so unseen sub-phases of a
    known tool pass through with a stable name.
    """
    if event_type.startswith(RESPONSE_PREFIX):
        return event_type[len(RESPONSE_PREFIX):]
    return event_type
