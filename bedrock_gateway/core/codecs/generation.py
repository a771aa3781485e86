from __future__ import annotations

from typing import Any

from ..content import flatten_text
from ..errors import MalformedUpstreamResponse
from ..finish_reason import map_finish_reason
from ..types import (
    ChatResult,
    FinishReason,
    ModelFamily,
    NormalizedRequest,
    StreamEvent,
    TextDelta,
)
from .base import ChatCodec, dump_payload, load_payload, optional_int


class GenerationCodec(ChatCodec):
    """Role/content message array with a single ``generation`` string back (Meta Llama)."""

    family = ModelFamily.GENERATION

    token_limit_field = "max_gen_len"
    nucleus_field = "top_p"
    output_field = "generation"

    def encode(self, request: NormalizedRequest) -> bytes:
        payload: dict[str, Any] = {
            "messages": [
                {"role": message.role, "content": flatten_text(message.content)}
                for message in request.messages
            ],
            self.token_limit_field: request.max_tokens,
            "temperature": request.temperature,
            self.nucleus_field: request.top_p,
        }
        return dump_payload(payload)

    def decode(self, body: bytes) -> ChatResult:
        payload = load_payload(body)
        generation = payload.get(self.output_field)
        if not isinstance(generation, str):
            raise MalformedUpstreamResponse(message=f"no {self.output_field} in response")

        return ChatResult(
            text=generation,
            finish_reason=map_finish_reason(payload.get("stop_reason")) or "stop",
            prompt_tokens=optional_int(payload.get("prompt_token_count")),
            completion_tokens=optional_int(payload.get("generation_token_count")),
        )

    def decode_stream_chunk(self, chunk: dict[str, Any]) -> list[StreamEvent]:
        if self.output_field not in chunk and "stop_reason" not in chunk:
            raise MalformedUpstreamResponse(
                message=f"stream chunk has no {self.output_field} field"
            )

        events: list[StreamEvent] = []
        if chunk.get(self.output_field):
            events.append(TextDelta(chunk[self.output_field]))
        if chunk.get("stop_reason"):
            events.append(FinishReason(chunk["stop_reason"]))
        return events
