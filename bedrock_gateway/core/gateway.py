from __future__ import annotations

import logging

from .catalog import build_catalog
from .classifier import FamilyClassifier, default_classifier
from .codecs.base import ChatCodec
from .codecs.embedding import SUPPORTED_EMBEDDING_MODELS
from .codecs.registry import CodecRegistry, default_registry
from .errors import UnsupportedModel
from .streaming import StreamTranslator
from .transport import JSON_CONTENT_TYPE, InferenceClient
from .types import (
    CatalogEntry,
    ChatResult,
    EmbeddingsResult,
    ModelFamily,
    NormalizedEmbeddingsRequest,
    NormalizedRequest,
)

logger = logging.getLogger(__name__)


class ModelGateway:
    """Entry point of the adapter core.

    Classifies the requested model, encodes with the family's codec, calls
    the inference client and decodes the reply. Holds no per-request state,
    so a single instance serves concurrent requests.
    """

    def __init__(
        self,
        client: InferenceClient,
        *,
        classifier: FamilyClassifier | None = None,
        registry: CodecRegistry | None = None,
    ) -> None:
        self._client = client
        self._classifier = classifier or default_classifier()
        self._registry = registry or default_registry()

    def classify(self, model_id: str) -> ModelFamily:
        return self._classifier.classify(model_id)

    def chat_codec(self, model_id: str) -> ChatCodec:
        family = self.classify(model_id)
        if family is ModelFamily.UNKNOWN:
            raise UnsupportedModel(message=f"Unsupported model '{model_id}'.", param="model")
        return self._registry.chat_codec(family, model_id)

    def handle_chat(self, request: NormalizedRequest) -> ChatResult:
        codec = self.chat_codec(request.model_id)
        body = codec.encode(request)
        logger.debug("Invoking %s (%s)", request.model_id, codec.family.value)
        response_body = self._client.invoke(request.model_id, JSON_CONTENT_TYPE, body)
        return codec.decode(response_body)

    def handle_chat_stream(self, request: NormalizedRequest) -> StreamTranslator:
        """Open an upstream stream; failures before it opens are raised directly."""

        codec = self.chat_codec(request.model_id)
        body = codec.encode(request)
        logger.debug("Invoking %s with streaming (%s)", request.model_id, codec.family.value)
        upstream = self._client.invoke_streaming(request.model_id, JSON_CONTENT_TYPE, body)
        return StreamTranslator(upstream, codec)

    def handle_embeddings(self, request: NormalizedEmbeddingsRequest) -> EmbeddingsResult:
        family = self.classify(request.model_id)
        if family is not ModelFamily.EMBEDDING or request.model_id not in SUPPORTED_EMBEDDING_MODELS:
            raise UnsupportedModel(
                message=f"Unsupported embedding model '{request.model_id}'.",
                param="model",
            )

        codec = self._registry.embedding_codec(family, request.model_id)
        body = codec.encode(request)
        response_body = self._client.invoke(request.model_id, JSON_CONTENT_TYPE, body)
        return codec.decode(request, response_body)

    def list_models(self) -> list[CatalogEntry]:
        return build_catalog(self._client)
