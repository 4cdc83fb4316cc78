"""
respgate - Image Generation Handlers

Partial and final frames are forwarded as-is; nothing about an image is
kept on StreamState.
"""

from typing import Any, Iterator

from ...core.serialization import as_event_dict
from ..sse import SSEEvent, encode_sse
from ..state import StreamState, resolve_call_id
from .base import BaseEventHandler


def _image_data(data: dict) -> Any:
    # Partial frames use partial_image_b64; some payloads use image_data/result.
    for key in ("partial_image_b64", "image_data", "result"):
        if data.get(key) is not None:
            return data[key]
    return None


class ImageEventHandler(BaseEventHandler):

    def handle_image_gen_progress(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        yield from self._passthrough(event, sequence, with_call_id=True)

    def handle_image_gen_partial(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)
        partial_index = data.get("partial_image_index")

        self._log("image_gen_partial", sequence, response={"call_id": call_id, "partial_image_index": partial_index})
        yield encode_sse(
            "image_gen_partial",
            {
                "call_id": call_id,
                "image_data": _image_data(data),
                "partial_image_index": partial_index,
            },
            sequence,
        )

    def handle_image_gen_completed(self, event: Any, state: StreamState, sequence: int) -> Iterator[SSEEvent]:
        data = as_event_dict(event)
        call_id = resolve_call_id(data)

        self._log("image_gen_completed", sequence, response={"call_id": call_id})
        yield encode_sse(
            "image_gen_completed",
            {"call_id": call_id, "image_data": _image_data(data)},
            sequence,
        )
