from __future__ import annotations

import logging

from fastapi import FastAPI

from bedrock_gateway.bedrock.client import BedrockClient
from bedrock_gateway.config import DESCRIPTION, SUMMARY, TITLE, VERSION, Settings, load_settings
from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.core.transport import InferenceClient
from bedrock_gateway.dependencies import register_exception_handlers
from bedrock_gateway.internal import admin
from bedrock_gateway.routers import chat, embeddings, models

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
    )


def create_app(
    settings: Settings | None = None,
    client: InferenceClient | None = None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title=TITLE,
        summary=SUMMARY,
        description=DESCRIPTION,
        version=VERSION,
        docs_url="/docs",
        redoc_url=None,
    )

    # One client per process; it is shared by every request.
    app.state.settings = settings
    app.state.gateway = ModelGateway(client or BedrockClient(settings.aws_region))

    register_exception_handlers(app)

    app.include_router(models.router, prefix=settings.api_route_prefix)
    app.include_router(chat.router, prefix=settings.api_route_prefix)
    app.include_router(embeddings.router, prefix=settings.api_route_prefix)
    app.include_router(admin.router)

    return app


def build_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings)

    logger.info("Starting %s v%s", TITLE, VERSION)
    logger.info("Using AWS Region: %s", settings.aws_region)
    logger.info("Default model: %s", settings.default_model)

    return create_app(settings)
