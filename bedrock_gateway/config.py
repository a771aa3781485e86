from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

TITLE = "Amazon Bedrock Proxy APIs"
SUMMARY = "OpenAI-Compatible RESTful APIs for Amazon Bedrock"
DESCRIPTION = "Use OpenAI-Compatible RESTful APIs for Amazon Bedrock models."
VERSION = "0.1.0"

_FALSE_VALUES = {"false", "0", "no", "n", "off"}


@dataclass(frozen=True, slots=True)
class Settings:
    api_route_prefix: str = "/api/v1"
    aws_region: str = "us-east-1"
    default_model: str = "anthropic.claude-3-sonnet-20240229-v1:0"
    default_embedding_model: str = "cohere.embed-multilingual-v3"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Read settings from the environment, honouring a local ``.env`` file."""

    load_dotenv()
    defaults = Settings()

    return Settings(
        api_route_prefix=_env_str("API_ROUTE_PREFIX", defaults.api_route_prefix),
        aws_region=_env_str("AWS_REGION", defaults.aws_region),
        default_model=_env_str("DEFAULT_MODEL", defaults.default_model),
        default_embedding_model=_env_str(
            "DEFAULT_EMBEDDING_MODEL", defaults.default_embedding_model
        ),
        debug=_env_bool("DEBUG", defaults.debug),
        host=_env_str("HOST", defaults.host),
        port=_env_int("PORT", defaults.port),
    )


def _env_str(key: str, default: str) -> str:
    return os.getenv(key) or default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if not value:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default
