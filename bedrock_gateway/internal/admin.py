from __future__ import annotations

from fastapi import APIRouter, Depends

from bedrock_gateway.config import VERSION, Settings
from bedrock_gateway.dependencies import get_settings

router = APIRouter(prefix="/internal", tags=["internal"])


@router.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {
        "status": "ok",
        "version": VERSION,
        "region": settings.aws_region,
    }
