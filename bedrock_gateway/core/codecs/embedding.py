from __future__ import annotations

import base64
import json
from typing import Any

from ..errors import InvalidInput, MalformedUpstreamResponse
from ..token_estimation import estimate_texts_tokens
from ..types import EmbeddingsResult, ModelFamily, NormalizedEmbeddingsRequest
from .base import EmbeddingCodec, dump_payload, load_payload

SUPPORTED_EMBEDDING_MODELS = {
    "cohere.embed-multilingual-v3": "Cohere Embed Multilingual",
    "cohere.embed-english-v3": "Cohere Embed English",
}


def coerce_texts(value: Any) -> list[str]:
    """Accept a string or a list; non-string list items are dropped."""

    if isinstance(value, str):
        return [value]

    if isinstance(value, (list, tuple)):
        texts = [item for item in value if isinstance(item, str)]
        if not texts:
            raise InvalidInput(
                message="input must contain at least one string.",
                param="input",
            )
        return texts

    raise InvalidInput(message="unsupported input format for embeddings", param="input")


class CohereEmbeddingCodec(EmbeddingCodec):
    family = ModelFamily.EMBEDDING

    def encode(self, request: NormalizedEmbeddingsRequest) -> bytes:
        payload = {
            "texts": coerce_texts(request.input),
            "input_type": "search_document",
            "truncate": "END",
        }
        return dump_payload(payload)

    def decode(self, request: NormalizedEmbeddingsRequest, body: bytes) -> EmbeddingsResult:
        payload = load_payload(body)
        embeddings = payload.get("embeddings")
        if not isinstance(embeddings, list):
            raise MalformedUpstreamResponse(message="no embeddings in response")

        if request.encoding_format == "base64":
            vectors: list[list[float] | str] = [_to_base64(vector) for vector in embeddings]
        else:
            vectors = list(embeddings)

        return EmbeddingsResult(
            model_id=request.model_id,
            embeddings=vectors,
            prompt_tokens=estimate_texts_tokens(payload.get("texts") or coerce_texts(request.input)),
        )


def _to_base64(vector: Any) -> str:
    serialized = json.dumps(vector, separators=(",", ":"))
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")
