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
from .base import ChatCodec, dump_payload, load_payload

HUMAN_PREFIX = "Human: "
ASSISTANT_PREFIX = "Assistant: "


def linearize_prompt(request: NormalizedRequest) -> str:
    """Render the conversation as ``Human:``/``Assistant:`` turns.

    Every turn is separated by a blank line and the prompt ends with the
    assistant cue. System turns are left out; tool results are sent as
    human turns.
    """

    turns: list[str] = []
    for message in request.messages:
        if message.role == "system":
            continue
        prefix = ASSISTANT_PREFIX if message.role == "assistant" else HUMAN_PREFIX
        turns.append(prefix + flatten_text(message.content))

    turns.append(ASSISTANT_PREFIX.rstrip())
    return "\n\n" + "\n\n".join(turns)


class LegacyCompletionCodec(ChatCodec):
    """Claude v2 / Instant text-completion format."""

    family = ModelFamily.LEGACY_COMPLETION

    def encode(self, request: NormalizedRequest) -> bytes:
        payload: dict[str, Any] = {
            "prompt": linearize_prompt(request),
            "max_tokens_to_sample": request.max_tokens,
            "temperature": request.temperature,
            "top_p": request.top_p,
        }

        if request.stop_sequences:
            payload["stop_sequences"] = list(request.stop_sequences)

        system_text = "\n\n".join(
            text
            for text in (
                flatten_text(message.content)
                for message in request.messages
                if message.role == "system"
            )
            if text
        )
        if system_text:
            payload["system"] = system_text

        return dump_payload(payload)

    def decode(self, body: bytes) -> ChatResult:
        payload = load_payload(body)
        completion = payload.get("completion")
        if not isinstance(completion, str):
            raise MalformedUpstreamResponse(message="no completion in response")

        return ChatResult(
            text=completion,
            finish_reason=map_finish_reason(payload.get("stop_reason")) or "stop",
        )

    def decode_stream_chunk(self, chunk: dict[str, Any]) -> list[StreamEvent]:
        if "completion" not in chunk and "stop_reason" not in chunk:
            raise MalformedUpstreamResponse(message="stream chunk has no completion field")

        events: list[StreamEvent] = []
        if chunk.get("completion"):
            events.append(TextDelta(chunk["completion"]))
        if chunk.get("stop_reason"):
            events.append(FinishReason(chunk["stop_reason"]))
        return events
