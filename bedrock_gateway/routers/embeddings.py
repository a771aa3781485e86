from __future__ import annotations

from fastapi import APIRouter, Depends

from bedrock_gateway.config import Settings
from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.dependencies import get_gateway, get_settings
from bedrock_gateway.openai.adapter import create_embeddings
from bedrock_gateway.openai.schemas import EmbeddingsRequest

router = APIRouter(tags=["openai"])


@router.post("/embeddings")
async def embeddings(
    payload: EmbeddingsRequest,
    gateway: ModelGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await create_embeddings(payload, gateway, settings)
