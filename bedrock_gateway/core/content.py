from __future__ import annotations

import json
import re
from typing import Any, Iterable

from .errors import InvalidInput
from .types import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    ROLES,
    BlocksContent,
    ContentBlock,
    ImageBlock,
    NormalizedContent,
    NormalizedMessage,
    NormalizedRequest,
    TextBlock,
    TextContent,
    ToolCall,
    ToolSpec,
)

DATA_URL_PATTERN = re.compile(r"^data:(image/[a-z]*);base64,\s*")

_ROLE_ALIASES = {"developer": "system"}


def normalize_content(content: Any) -> NormalizedContent:
    """Canonicalize an OpenAI message ``content`` value.

    Strings become ``TextContent``; lists become ``BlocksContent`` holding the
    recognised ``text`` and ``image_url`` parts in their original order.
    Unrecognised parts are dropped.
    """

    if content is None:
        return TextContent("")

    if isinstance(content, str):
        return TextContent(content)

    if isinstance(content, dict):
        content = [content]

    if isinstance(content, list):
        blocks: list[ContentBlock] = []
        for part in content:
            block = _normalize_block(part)
            if block is not None:
                blocks.append(block)
        return BlocksContent(tuple(blocks))

    return TextContent(json.dumps(content))


def flatten_text(content: NormalizedContent) -> str:
    if isinstance(content, TextContent):
        return content.text

    return "".join(
        block.text for block in content.blocks if isinstance(block, TextBlock)
    )


def has_images(content: NormalizedContent) -> bool:
    return isinstance(content, BlocksContent) and any(
        isinstance(block, ImageBlock) for block in content.blocks
    )


def normalize_message(
    role: str,
    content: Any,
    *,
    tool_call_id: str | None = None,
    tool_calls: Iterable[dict[str, Any]] | None = None,
    index: int = 0,
) -> NormalizedMessage:
    canonical_role = _ROLE_ALIASES.get(role.lower(), role.lower())
    if canonical_role not in ROLES:
        raise InvalidInput(
            message=f"Unsupported role '{role}' in messages[{index}].",
            param="messages",
        )

    if canonical_role == "tool" and not tool_call_id:
        raise InvalidInput(
            message=f"messages[{index}] has role 'tool' but no tool_call_id.",
            param="messages",
        )

    return NormalizedMessage(
        role=canonical_role,
        content=normalize_content(content),
        tool_call_id=tool_call_id,
        tool_calls=tuple(
            _normalize_tool_call(call, index) for call in tool_calls or ()
        ),
    )


def build_request(
    model_id: str,
    messages: Iterable[NormalizedMessage],
    *,
    max_tokens: int | None = None,
    temperature: float | None = None,
    top_p: float | None = None,
    stop: str | Iterable[str] | None = None,
    tools: Iterable[ToolSpec] = (),
) -> NormalizedRequest:
    """Assemble a ``NormalizedRequest``, applying defaults for omitted or zero values."""

    if max_tokens is not None and max_tokens < 0:
        raise InvalidInput(message="max_tokens must be greater than 0.", param="max_tokens")
    if temperature is not None and temperature < 0:
        raise InvalidInput(
            message="temperature must be greater than or equal to 0.",
            param="temperature",
        )

    messages = tuple(messages)
    if not messages:
        raise InvalidInput(message="messages must contain at least one item.", param="messages")

    if isinstance(stop, str):
        stop = [stop]

    return NormalizedRequest(
        model_id=model_id,
        messages=messages,
        max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
        temperature=temperature or DEFAULT_TEMPERATURE,
        top_p=DEFAULT_TOP_P if top_p is None else top_p,
        stop_sequences=tuple(dedupe_preserve_order(stop or ())),
        tools=tuple(tools),
    )


def dedupe_preserve_order(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    deduped: list[str] = []

    for item in items:
        if item in seen:
            continue
        seen.add(item)
        deduped.append(item)

    return deduped


def _normalize_block(part: Any) -> ContentBlock | None:
    if not isinstance(part, dict):
        return None

    block_type = part.get("type")

    if block_type == "text" and isinstance(part.get("text"), str):
        return TextBlock(part["text"])

    if block_type == "image_url":
        image_url = part.get("image_url")
        url = image_url.get("url") if isinstance(image_url, dict) else image_url
        if not isinstance(url, str) or not url:
            return None

        match = DATA_URL_PATTERN.match(url)
        return ImageBlock(url=url, mime_type=match.group(1) if match else None)

    return None


def _normalize_tool_call(call: dict[str, Any], index: int) -> ToolCall:
    function = call.get("function") or {}
    name = function.get("name")
    if not call.get("id") or not name:
        raise InvalidInput(
            message=f"tool_calls in messages[{index}] must include id and function.name.",
            param="messages",
        )

    arguments = function.get("arguments")
    if arguments is None:
        arguments = "{}"
    elif not isinstance(arguments, str):
        arguments = json.dumps(arguments)

    return ToolCall(id=call["id"], name=name, arguments=arguments)
