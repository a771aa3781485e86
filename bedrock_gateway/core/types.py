from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union

DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 1.0

Role = Literal["system", "user", "assistant", "tool"]
ROLES: tuple[str, ...] = ("system", "user", "assistant", "tool")


class ModelFamily(str, Enum):
    MESSAGES = "messages"
    LEGACY_COMPLETION = "legacy_completion"
    GENERATION = "generation"
    EMBEDDING = "embedding"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: str


@dataclass(frozen=True, slots=True)
class ImageBlock:
    url: str
    mime_type: str | None = None


ContentBlock = Union[TextBlock, ImageBlock]


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str


@dataclass(frozen=True, slots=True)
class BlocksContent:
    blocks: tuple[ContentBlock, ...] = ()


NormalizedContent = Union[TextContent, BlocksContent]


@dataclass(frozen=True, slots=True)
class ToolCall:
    id: str
    name: str
    arguments: str = "{}"


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class NormalizedMessage:
    role: Role
    content: NormalizedContent
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()


@dataclass(frozen=True, slots=True)
class NormalizedRequest:
    model_id: str
    messages: tuple[NormalizedMessage, ...]
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    stop_sequences: tuple[str, ...] = ()
    tools: tuple[ToolSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class NormalizedEmbeddingsRequest:
    model_id: str
    input: Any
    encoding_format: Literal["float", "base64"] = "float"


@dataclass(slots=True)
class ChatResult:
    text: str
    finish_reason: str = "stop"
    tool_calls: list[ToolCall] = field(default_factory=list)
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


@dataclass(slots=True)
class EmbeddingsResult:
    model_id: str
    embeddings: list[list[float] | str]
    prompt_tokens: int = 0


@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str


@dataclass(frozen=True, slots=True)
class ToolCallDelta:
    """Fragment of a tool call; ``id`` and ``name`` arrive on the first fragment only."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""


@dataclass(frozen=True, slots=True)
class FinishReason:
    reason: str


@dataclass(frozen=True, slots=True)
class StreamError:
    message: str
    error: Exception | None = None


StreamEvent = Union[TextDelta, ToolCallDelta, FinishReason, StreamError]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    model_id: str
    owner: str

    @classmethod
    def from_model_id(cls, model_id: str) -> CatalogEntry:
        return cls(model_id=model_id, owner=model_id.split(".", 1)[0])
