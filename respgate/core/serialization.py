"""
respgate - Serialization Helpers

Converts upstream SDK objects into plain JSON-safe structures.
"""

from enum import Enum
from typing import Any, Dict


def to_jsonable(value: Any) -> Any:
    """
    Convert a value into something ``json.dumps`` accepts.

    Pydantic models (the openai SDK's response and event types) are dumped,
    containers are converted recursively, and anything else unknown falls
    back to ``str``.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump"):
        return to_jsonable(value.model_dump(mode="json"))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return str(value)


def as_event_dict(event: Any) -> Dict[str, Any]:
    """
    View a raw upstream event as a dict.

    SDK models are dumped, dicts pass through, and malformed events
    (None, numbers, strings, lists) become an empty dict.
    """
    if isinstance(event, dict):
        return event
    if hasattr(event, "model_dump"):
        dumped = event.model_dump(mode="json")
        if isinstance(dumped, dict):
            return dumped
    return {}
