from __future__ import annotations

from fastapi import APIRouter, Depends

from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.dependencies import get_gateway
from bedrock_gateway.openai.adapter import list_models as list_model_cards

router = APIRouter(tags=["openai"])


@router.get("/models")
async def list_models(gateway: ModelGateway = Depends(get_gateway)) -> dict:
    return await list_model_cards(gateway)
