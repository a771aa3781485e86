from __future__ import annotations

import base64

import httpx
import pytest

from bedrock_gateway.core.errors import FetchError, InvalidInput
from bedrock_gateway.core.images import fetch_image


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_inline_data_url_is_decoded_without_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("network call not expected")

    encoded = base64.b64encode(b"pixels").decode()

    data, mime_type = fetch_image(f"data:image/png;base64,{encoded}", client=_client(handler))

    assert data == b"pixels"
    assert mime_type == "image/png"


def test_invalid_inline_data_is_invalid_input():
    with pytest.raises(InvalidInput):
        fetch_image("data:image/png;base64,***")


def test_remote_image_is_downloaded():
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://example.test/cat.gif"
        return httpx.Response(200, content=b"GIF89a", headers={"content-type": "image/gif"})

    assert fetch_image("https://example.test/cat.gif", client=_client(handler)) == (
        b"GIF89a",
        "image/gif",
    )


def test_non_image_content_type_falls_back_to_jpeg():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"raw", headers={"content-type": "application/octet-stream"})

    _, mime_type = fetch_image("https://example.test/blob", client=_client(handler))

    assert mime_type == "image/jpeg"


def test_non_200_status_is_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(FetchError) as excinfo:
        fetch_image("https://example.test/missing.png", client=_client(handler))

    assert "404" in excinfo.value.message


def test_connection_failure_is_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError):
        fetch_image("https://example.test/a.png", client=_client(handler))
