"""Codec interfaces shared by every model family.

A codec owns one family's wire format: it turns a ``NormalizedRequest`` into
the JSON body the inference service expects for that family, and turns the
family's response body (or a single streamed chunk) back into normalized
results. Payloads are opaque bytes outside their codec.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from ..errors import MalformedUpstreamResponse
from ..types import (
    ChatResult,
    EmbeddingsResult,
    ModelFamily,
    NormalizedEmbeddingsRequest,
    NormalizedRequest,
    StreamEvent,
)

logger = logging.getLogger(__name__)


class ChatCodec(ABC):
    family: ModelFamily
    supports_tools: bool = False
    supports_images: bool = False

    @abstractmethod
    def encode(self, request: NormalizedRequest) -> bytes:
        """Build the family-specific request body.

        Raises:
            InvalidInput: Content cannot be expressed in this family's format.
            FetchError: A referenced remote image could not be retrieved.
        """
        ...

    @abstractmethod
    def decode(self, body: bytes) -> ChatResult:
        """Parse a complete response body.

        Raises:
            MalformedUpstreamResponse: The expected field is missing.
        """
        ...

    @abstractmethod
    def decode_stream_chunk(self, chunk: dict[str, Any]) -> list[StreamEvent]:
        """Translate one streamed chunk into zero or more events.

        Known chunks that carry nothing for the caller return ``[]``.
        Unrecognised shapes raise ``MalformedUpstreamResponse``.
        """
        ...


class EmbeddingCodec(ABC):
    family: ModelFamily = ModelFamily.EMBEDDING

    @abstractmethod
    def encode(self, request: NormalizedEmbeddingsRequest) -> bytes: ...

    @abstractmethod
    def decode(self, request: NormalizedEmbeddingsRequest, body: bytes) -> EmbeddingsResult: ...


def dump_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def load_payload(body: bytes | str) -> dict[str, Any]:
    logger.debug("Raw response: %s", body)

    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise MalformedUpstreamResponse(message=f"failed to parse response: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedUpstreamResponse(message="response body is not a JSON object")

    return payload


def optional_int(value: Any) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) else None
