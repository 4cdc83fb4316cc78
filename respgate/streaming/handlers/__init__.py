"""
respgate - Category Event Handlers

One handler class per upstream event family. Every handler method has
the signature ``(event, state, sequence) -> Iterator[SSEEvent]``.
"""

from .base import BaseEventHandler, AccumulatingEventHandler, STREAM_ENDPOINT
from .lifecycle import LifecycleEventHandler
from .text import TextEventHandler
from .reasoning import ReasoningEventHandler
from .refusal import RefusalEventHandler
from .audio import AudioEventHandler
from .tool_calls import ToolCallingEventHandler
from .mcp import MCPEventHandler
from .image import ImageEventHandler
from .computer_use import ComputerUseEventHandler
from .structural import StructuralEventHandler

__all__ = [
    "BaseEventHandler",
    "AccumulatingEventHandler",
    "STREAM_ENDPOINT",
    "LifecycleEventHandler",
    "TextEventHandler",
    "ReasoningEventHandler",
    "RefusalEventHandler",
    "AudioEventHandler",
    "ToolCallingEventHandler",
    "MCPEventHandler",
    "ImageEventHandler",
    "ComputerUseEventHandler",
    "StructuralEventHandler",
]
