from __future__ import annotations

import base64
import json
from typing import Any, Callable

from ..content import flatten_text
from ..errors import InvalidInput, MalformedUpstreamResponse
from ..finish_reason import map_finish_reason
from ..images import fetch_image
from ..types import (
    ChatResult,
    FinishReason,
    ImageBlock,
    ModelFamily,
    NormalizedMessage,
    NormalizedRequest,
    StreamEvent,
    TextBlock,
    TextContent,
    TextDelta,
    ToolCall,
    ToolCallDelta,
)
from .base import ChatCodec, dump_payload, load_payload, optional_int

ANTHROPIC_VERSION = "bedrock-2023-05-31"

ImageFetcher = Callable[[str], tuple[bytes, str]]

# Stream chunk types that carry nothing for the caller.
_SILENT_CHUNK_TYPES = {"message_start", "content_block_stop", "message_stop", "ping"}


def system_instruction(system_text: str) -> str:
    return f"Human: <system>\n{system_text}\n</system>\n\n"


class MessagesCodec(ChatCodec):
    """Anthropic Messages API as served by Bedrock (Claude 3 and later).

    Bedrock's ``invoke_model`` body for these models has no slot that the
    OpenAI ``system`` role maps onto, so system text is wrapped and prepended
    to the first user turn.
    """

    family = ModelFamily.MESSAGES
    supports_tools = True
    supports_images = True

    def __init__(self, image_fetcher: ImageFetcher = fetch_image) -> None:
        self._fetch_image = image_fetcher

    def encode(self, request: NormalizedRequest) -> bytes:
        system_parts: list[str] = []
        formatted: list[tuple[NormalizedMessage, dict[str, Any]]] = []

        for message in request.messages:
            if message.role == "system":
                text = flatten_text(message.content)
                if text:
                    system_parts.append(text)
                continue
            formatted.append((message, self._format_message(message)))

        wire_messages = [wire for _, wire in formatted]

        if system_parts:
            instruction = system_instruction("\n\n".join(system_parts))
            for message, wire in formatted:
                if message.role == "user":
                    wire["content"] = _prepend_instruction(instruction, wire["content"])
                    break
            else:
                wire_messages.insert(0, {"role": "user", "content": instruction})

        payload: dict[str, Any] = {
            "messages": wire_messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "top_p": request.top_p,
            "anthropic_version": ANTHROPIC_VERSION,
        }

        if request.stop_sequences:
            payload["stop_sequences"] = list(request.stop_sequences)

        if request.tools:
            payload["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters or {"type": "object", "properties": {}},
                }
                for tool in request.tools
            ]

        return dump_payload(payload)

    def decode(self, body: bytes) -> ChatResult:
        payload = load_payload(body)
        content = payload.get("content")
        if not isinstance(content, list):
            raise MalformedUpstreamResponse(message="no content in response")

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []

        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text" and isinstance(block.get("text"), str):
                text_parts.append(block["text"])
            elif block.get("type") == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=str(block.get("id", "")),
                        name=str(block.get("name", "")),
                        arguments=json.dumps(block.get("input") or {}),
                    )
                )

        if not text_parts and not tool_calls:
            raise MalformedUpstreamResponse(message="no content in response")

        usage = payload.get("usage") or {}

        return ChatResult(
            text="".join(text_parts),
            finish_reason=map_finish_reason(payload.get("stop_reason")) or "stop",
            tool_calls=tool_calls,
            prompt_tokens=optional_int(usage.get("input_tokens")),
            completion_tokens=optional_int(usage.get("output_tokens")),
        )

    def decode_stream_chunk(self, chunk: dict[str, Any]) -> list[StreamEvent]:
        chunk_type = chunk.get("type")

        if chunk_type in _SILENT_CHUNK_TYPES:
            return []

        if chunk_type == "content_block_start":
            block = chunk.get("content_block") or {}
            if block.get("type") == "tool_use":
                return [
                    ToolCallDelta(
                        index=int(chunk.get("index", 0)),
                        id=block.get("id"),
                        name=block.get("name"),
                    )
                ]
            if block.get("type") == "text" and block.get("text"):
                return [TextDelta(block["text"])]
            return []

        if chunk_type == "content_block_delta":
            delta = chunk.get("delta") or {}
            if delta.get("type") == "text_delta":
                return [TextDelta(delta.get("text", ""))] if delta.get("text") else []
            if delta.get("type") == "input_json_delta":
                return [
                    ToolCallDelta(
                        index=int(chunk.get("index", 0)),
                        arguments=delta.get("partial_json", ""),
                    )
                ]

        if chunk_type == "message_delta":
            stop_reason = (chunk.get("delta") or {}).get("stop_reason")
            return [FinishReason(stop_reason)] if stop_reason else []

        raise MalformedUpstreamResponse(message=f"unrecognised stream chunk type '{chunk_type}'")

    def _format_message(self, message: NormalizedMessage) -> dict[str, Any]:
        if message.role == "tool":
            return {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": message.tool_call_id,
                        "content": flatten_text(message.content),
                    }
                ],
            }

        content = self._format_content(message)

        if message.role == "assistant" and message.tool_calls:
            if isinstance(content, str):
                blocks = [{"type": "text", "text": content}] if content else []
            else:
                blocks = content

            for call in message.tool_calls:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": _parse_arguments(call),
                    }
                )
            content = blocks

        return {"role": message.role, "content": content}

    def _format_content(self, message: NormalizedMessage) -> str | list[dict[str, Any]]:
        content = message.content
        if isinstance(content, TextContent):
            return content.text

        blocks: list[dict[str, Any]] = []
        for block in content.blocks:
            if isinstance(block, TextBlock):
                blocks.append({"type": "text", "text": block.text})
            elif isinstance(block, ImageBlock):
                data, mime_type = self._fetch_image(block.url)
                blocks.append(
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": block.mime_type or mime_type,
                            "data": base64.b64encode(data).decode("ascii"),
                        },
                    }
                )
        return blocks


def _prepend_instruction(
    instruction: str,
    content: str | list[dict[str, Any]],
) -> str | list[dict[str, Any]]:
    if isinstance(content, str):
        return instruction + content
    return [{"type": "text", "text": instruction}, *content]


def _parse_arguments(call: ToolCall) -> Any:
    try:
        return json.loads(call.arguments or "{}")
    except ValueError as exc:
        raise InvalidInput(
            message=f"tool call '{call.id}' has arguments that are not valid JSON.",
            param="messages",
        ) from exc
