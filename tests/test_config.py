from __future__ import annotations

import pytest

from bedrock_gateway import config
from bedrock_gateway.config import Settings, load_settings

_KEYS = (
    "API_ROUTE_PREFIX",
    "AWS_REGION",
    "DEFAULT_MODEL",
    "DEFAULT_EMBEDDING_MODEL",
    "DEBUG",
    "HOST",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_apply_when_unset():
    assert load_settings() == Settings()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("API_ROUTE_PREFIX", "/v1")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("DEFAULT_MODEL", "meta.llama3-8b-instruct-v1:0")
    monkeypatch.setenv("PORT", "9000")

    settings = load_settings()

    assert settings.api_route_prefix == "/v1"
    assert settings.aws_region == "eu-west-1"
    assert settings.default_model == "meta.llama3-8b-instruct-v1:0"
    assert settings.default_embedding_model == "cohere.embed-multilingual-v3"
    assert settings.port == 9000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("1", True), ("yes", True), ("false", False), ("0", False), ("Off", False)],
)
def test_debug_flag_is_lenient(monkeypatch, raw: str, expected: bool):
    monkeypatch.setenv("DEBUG", raw)

    assert load_settings().debug is expected


def test_unparseable_port_keeps_default(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")

    assert load_settings().port == 8000
