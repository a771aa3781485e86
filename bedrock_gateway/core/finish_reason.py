from __future__ import annotations

FINISH_REASON_MAPPING = {
    "tool_use": "tool_calls",
    "finished": "stop",
    "end_turn": "stop",
    "max_tokens": "length",
    "stop_sequence": "stop",
    "complete": "stop",
    "content_filtered": "content_filter",
}


def map_finish_reason(finish_reason: str | None) -> str | None:
    """Translate an upstream completion reason to the OpenAI vocabulary.

    Unknown values are passed through lower-cased.
    """

    if not finish_reason:
        return finish_reason

    lowered = finish_reason.lower()
    return FINISH_REASON_MAPPING.get(lowered, lowered)
