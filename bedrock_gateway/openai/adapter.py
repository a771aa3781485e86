from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator

from fastapi.concurrency import run_in_threadpool

from bedrock_gateway.config import Settings
from bedrock_gateway.core.content import (
    build_request,
    dedupe_preserve_order,
    flatten_text,
    has_images,
    normalize_message,
)
from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.core.streaming import StreamTranslator
from bedrock_gateway.core.token_estimation import estimate_tokens
from bedrock_gateway.core.types import (
    CatalogEntry,
    ChatResult,
    FinishReason,
    NormalizedEmbeddingsRequest,
    NormalizedRequest,
    StreamError,
    TextDelta,
    ToolCallDelta,
    ToolSpec,
)

from .errors import map_adapter_error
from .schemas import ChatCompletionRequest, EmbeddingsRequest

_IGNORED_FIELDS = (
    "frequency_penalty",
    "presence_penalty",
    "logprobs",
    "n",
    "seed",
    "user",
    "response_format",
    "parallel_tool_calls",
    "metadata",
)


@dataclass
class PreparedChatRequest:
    normalized: NormalizedRequest
    prompt_tokens: int
    include_stream_usage: bool
    warnings: list[str]


def model_card(entry: CatalogEntry) -> dict[str, Any]:
    return {
        "id": entry.model_id,
        "object": "model",
        "created": 0,
        "owned_by": entry.owner,
    }


def warning_headers(warnings: list[str]) -> dict[str, str]:
    if not warnings:
        return {}

    value = " | ".join(dedupe_preserve_order(warnings))
    if len(value) > 2048:
        value = value[:2045] + "..."
    return {"X-OpenAI-Compat-Warnings": value}


def prepare_chat_request(
    request: ChatCompletionRequest,
    gateway: ModelGateway,
    settings: Settings,
) -> PreparedChatRequest:
    model_id = request.model or settings.default_model
    codec = gateway.chat_codec(model_id)

    messages = [
        normalize_message(
            message.role,
            message.content,
            tool_call_id=message.tool_call_id,
            tool_calls=message.tool_calls,
            index=idx,
        )
        for idx, message in enumerate(request.messages)
    ]

    warnings = _collect_warnings(request)

    tools: list[ToolSpec] = []
    if request.tools:
        if codec.supports_tools:
            tools = [
                ToolSpec(
                    name=tool.function.name,
                    description=tool.function.description or "",
                    parameters=tool.function.parameters or {},
                )
                for tool in request.tools
                if tool.type == "function"
            ]
        else:
            warnings.append(f"Model '{model_id}' does not support tools; tools were ignored.")

    if not codec.supports_images:
        for idx, message in enumerate(messages):
            if has_images(message.content):
                warnings.append(f"Ignored image content parts in messages[{idx}].")

    normalized = build_request(
        model_id,
        messages,
        max_tokens=request.max_tokens or request.max_completion_tokens,
        temperature=request.temperature,
        top_p=request.top_p,
        stop=request.stop,
        tools=tools,
    )

    return PreparedChatRequest(
        normalized=normalized,
        prompt_tokens=estimate_tokens(
            "\n".join(flatten_text(message.content) for message in messages)
        ),
        include_stream_usage=bool(
            request.stream_options is not None and request.stream_options.include_usage
        ),
        warnings=dedupe_preserve_order(warnings),
    )


async def create_chat_completion(
    request: ChatCompletionRequest,
    gateway: ModelGateway,
    settings: Settings,
) -> tuple[dict[str, Any], list[str]]:
    prepared = prepare_chat_request(request, gateway, settings)
    created_at = int(time.time())

    result = await run_in_threadpool(gateway.handle_chat, prepared.normalized)

    prompt_tokens = result.prompt_tokens
    if prompt_tokens is None:
        prompt_tokens = prepared.prompt_tokens
    completion_tokens = result.completion_tokens
    if completion_tokens is None:
        completion_tokens = estimate_tokens(result.text)

    payload = {
        "id": _new_chat_completion_id(),
        "object": "chat.completion",
        "created": created_at,
        "model": prepared.normalized.model_id,
        "choices": [
            {
                "index": 0,
                "message": _response_message(result),
                "finish_reason": result.finish_reason,
            }
        ],
        "usage": _usage_payload(prompt_tokens, completion_tokens),
    }

    return payload, prepared.warnings


async def create_chat_completion_stream(
    request: ChatCompletionRequest,
    gateway: ModelGateway,
    settings: Settings,
) -> tuple[AsyncIterator[bytes], list[str]]:
    prepared = prepare_chat_request(request, gateway, settings)
    completion_id = _new_chat_completion_id()
    created_at = int(time.time())
    model_id = prepared.normalized.model_id

    # Opened eagerly so model and transport failures become plain HTTP errors.
    events = await run_in_threadpool(gateway.handle_chat_stream, prepared.normalized)

    def _chunk(delta: dict[str, Any], finish_reason: str | None = None) -> bytes:
        return _sse_data(
            {
                "id": completion_id,
                "object": "chat.completion.chunk",
                "created": created_at,
                "model": model_id,
                "choices": [
                    {
                        "index": 0,
                        "delta": delta,
                        "finish_reason": finish_reason,
                    }
                ],
            }
        )

    async def _iterator() -> AsyncIterator[bytes]:
        completion_parts: list[str] = []
        try:
            yield _chunk({"role": "assistant"})

            async for event in _pull_events(events):
                if isinstance(event, TextDelta):
                    completion_parts.append(event.text)
                    yield _chunk({"content": event.text})

                elif isinstance(event, ToolCallDelta):
                    yield _chunk({"tool_calls": [_tool_call_delta(event)]})

                elif isinstance(event, FinishReason):
                    yield _chunk({}, event.reason)

                    if prepared.include_stream_usage:
                        completion_tokens = estimate_tokens("".join(completion_parts))
                        yield _sse_data(
                            {
                                "id": completion_id,
                                "object": "chat.completion.chunk",
                                "created": created_at,
                                "model": model_id,
                                "choices": [],
                                "usage": _usage_payload(
                                    prepared.prompt_tokens, completion_tokens
                                ),
                            }
                        )

                elif isinstance(event, StreamError):
                    mapped = map_adapter_error(event.error or Exception(event.message))
                    yield _sse_data({"error": mapped.to_error()})

        except Exception as exc:
            mapped = map_adapter_error(exc)
            yield _sse_data({"error": mapped.to_error()})

        finally:
            events.close()

        yield b"data: [DONE]\n\n"

    return _iterator(), prepared.warnings


async def create_embeddings(
    request: EmbeddingsRequest,
    gateway: ModelGateway,
    settings: Settings,
) -> dict[str, Any]:
    normalized = NormalizedEmbeddingsRequest(
        model_id=request.model or settings.default_embedding_model,
        input=request.input,
        encoding_format=request.encoding_format or "float",
    )

    result = await run_in_threadpool(gateway.handle_embeddings, normalized)

    return {
        "object": "list",
        "data": [
            {
                "object": "embedding",
                "embedding": embedding,
                "index": index,
            }
            for index, embedding in enumerate(result.embeddings)
        ],
        "model": result.model_id,
        "usage": {
            "prompt_tokens": result.prompt_tokens,
            "total_tokens": result.prompt_tokens,
        },
    }


async def list_models(gateway: ModelGateway) -> dict[str, Any]:
    entries = await run_in_threadpool(gateway.list_models)
    return {
        "object": "list",
        "data": [model_card(entry) for entry in entries],
    }


async def _pull_events(events: StreamTranslator) -> AsyncIterator[Any]:
    # One upstream read per step; a cancelled consumer stops pulling here.
    while True:
        event = await run_in_threadpool(next, events, None)
        if event is None:
            return
        yield event


def _response_message(result: ChatResult) -> dict[str, Any]:
    message: dict[str, Any] = {
        "role": "assistant",
        "content": result.text,
    }

    if result.tool_calls:
        message["content"] = result.text or None
        message["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.name,
                    "arguments": call.arguments,
                },
            }
            for call in result.tool_calls
        ]

    return message


def _tool_call_delta(event: ToolCallDelta) -> dict[str, Any]:
    delta: dict[str, Any] = {"index": event.index}
    function: dict[str, Any] = {"arguments": event.arguments}

    if event.id is not None:
        delta["id"] = event.id
        delta["type"] = "function"
    if event.name is not None:
        function["name"] = event.name

    delta["function"] = function
    return delta


def _collect_warnings(request: ChatCompletionRequest) -> list[str]:
    warnings: list[str] = []

    if request.tool_choice is not None:
        warnings.append("Received tool_choice, but it is not forwarded to Bedrock.")

    ignored_fields = [
        field_name
        for field_name in _IGNORED_FIELDS
        if getattr(request, field_name) is not None
    ]

    if request.model_extra:
        ignored_fields.extend(sorted(request.model_extra.keys()))

    if ignored_fields:
        warnings.append(
            "Ignored unsupported request fields: "
            + ", ".join(dedupe_preserve_order(ignored_fields))
        )

    return warnings


def _usage_payload(prompt_tokens: int, completion_tokens: int) -> dict[str, int]:
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


def _new_chat_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def _sse_data(payload: dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")
