from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from bedrock_gateway.config import Settings
from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.dependencies import get_gateway, get_settings
from bedrock_gateway.openai.adapter import (
    create_chat_completion,
    create_chat_completion_stream,
    warning_headers,
)
from bedrock_gateway.openai.schemas import ChatCompletionRequest

router = APIRouter(tags=["openai"])


@router.post("/chat/completions")
async def chat_completions(
    payload: ChatCompletionRequest,
    gateway: ModelGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    if payload.stream:
        iterator, warnings = await create_chat_completion_stream(payload, gateway, settings)
        headers = warning_headers(warnings)
        headers["Cache-Control"] = "no-cache"

        return StreamingResponse(
            iterator,
            media_type="text/event-stream",
            headers=headers,
        )

    response_payload, warnings = await create_chat_completion(payload, gateway, settings)
    return JSONResponse(content=response_payload, headers=warning_headers(warnings))
