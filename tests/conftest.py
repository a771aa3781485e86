from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bedrock_gateway.config import Settings
from bedrock_gateway.main import create_app
from helpers import FakeInferenceClient


@pytest.fixture()
def fake_client() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_route_prefix="/api/v1")


@pytest.fixture()
def client(fake_client: FakeInferenceClient, settings: Settings) -> TestClient:
    return TestClient(create_app(settings=settings, client=fake_client))
