from __future__ import annotations

from ..errors import UnsupportedModel
from ..types import ModelFamily
from .base import ChatCodec, EmbeddingCodec
from .embedding import CohereEmbeddingCodec
from .generation import GenerationCodec
from .legacy_completion import LegacyCompletionCodec
from .messages import ImageFetcher, MessagesCodec


class CodecRegistry:
    """Chat and embedding codecs keyed by ``ModelFamily``."""

    def __init__(self) -> None:
        self._chat: dict[ModelFamily, ChatCodec] = {}
        self._embedding: dict[ModelFamily, EmbeddingCodec] = {}

    def register_chat(self, codec: ChatCodec) -> None:
        self._chat[codec.family] = codec

    def register_embedding(self, codec: EmbeddingCodec) -> None:
        self._embedding[codec.family] = codec

    def chat_codec(self, family: ModelFamily, model_id: str) -> ChatCodec:
        codec = self._chat.get(family)
        if codec is None:
            raise UnsupportedModel(
                message=f"Unsupported model '{model_id}' for chat completions.",
                param="model",
            )
        return codec

    def embedding_codec(self, family: ModelFamily, model_id: str) -> EmbeddingCodec:
        codec = self._embedding.get(family)
        if codec is None:
            raise UnsupportedModel(
                message=f"Unsupported embedding model '{model_id}'.",
                param="model",
            )
        return codec


def default_registry(image_fetcher: ImageFetcher | None = None) -> CodecRegistry:
    registry = CodecRegistry()
    if image_fetcher is None:
        registry.register_chat(MessagesCodec())
    else:
        registry.register_chat(MessagesCodec(image_fetcher))
    registry.register_chat(LegacyCompletionCodec())
    registry.register_chat(GenerationCodec())
    registry.register_embedding(CohereEmbeddingCodec())
    return registry
