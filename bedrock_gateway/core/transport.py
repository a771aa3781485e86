from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class FoundationModelSummary:
    id: str
    lifecycle_status: str | None = None
    streaming_supported: bool | None = None


@dataclass(frozen=True, slots=True)
class InferenceProfileSummary:
    id: str
    status: str | None = None


class UpstreamEventStream(Protocol):
    """Pull-based sequence of raw event payloads; must be closed by the caller."""

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


class InferenceClient(Protocol):
    """Boundary of the managed inference service.

    Implementations raise ``TransportError`` for network or service failures
    and must be safe to share between concurrent requests.
    """

    def invoke(self, model_id: str, content_type: str, body: bytes) -> bytes: ...

    def invoke_streaming(
        self,
        model_id: str,
        content_type: str,
        body: bytes,
    ) -> UpstreamEventStream: ...

    def list_foundation_models(self, modality_filter: str) -> list[FoundationModelSummary]: ...

    def list_inference_profiles(
        self,
        type_filter: str,
        max_results: int,
    ) -> list[InferenceProfileSummary]: ...
