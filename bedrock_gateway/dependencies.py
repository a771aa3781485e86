from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bedrock_gateway.config import Settings
from bedrock_gateway.core.errors import AdapterError
from bedrock_gateway.core.gateway import ModelGateway
from bedrock_gateway.openai.errors import OpenAICompatError, map_adapter_error


def get_gateway(request: Request) -> ModelGateway:
    return request.app.state.gateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OpenAICompatError)
    async def handle_openai_error(
        _request: Request,
        exc: OpenAICompatError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.to_error()},
        )

    @app.exception_handler(AdapterError)
    async def handle_adapter_error(
        _request: Request,
        exc: AdapterError,
    ) -> JSONResponse:
        compat_error = map_adapter_error(exc)
        return JSONResponse(
            status_code=compat_error.status_code,
            content={"error": compat_error.to_error()},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        first_error = exc.errors()[0]["msg"] if exc.errors() else "Invalid request"

        compat_error = OpenAICompatError(
            status_code=400,
            message=first_error,
            error_type="invalid_request_error",
            code="invalid_request",
        )
        return JSONResponse(
            status_code=compat_error.status_code,
            content={"error": compat_error.to_error()},
        )
