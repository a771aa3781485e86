from __future__ import annotations

import json
from typing import Any

from bedrock_gateway.core.transport import FoundationModelSummary, InferenceProfileSummary

CLAUDE_3 = "anthropic.claude-3-sonnet-20240229-v1:0"


class FakeEventStream:
    def __init__(self, chunks: list[Any], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error
        self.closed = False
        self.reads = 0

    def __iter__(self):
        for chunk in self._chunks:
            if self.closed:
                return
            self.reads += 1
            yield chunk
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


class FakeInferenceClient:
    """Records invocations and replays canned upstream responses."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.response: bytes | Exception = json.dumps(
            {
                "content": [{"type": "text", "text": "stub completion"}],
                "stop_reason": "end_turn",
                "usage": {"input_tokens": 7, "output_tokens": 3},
            }
        ).encode()
        self.stream_chunks: list[Any] = []
        self.stream_error: Exception | None = None
        self.streams: list[FakeEventStream] = []
        self.foundation_models: list[FoundationModelSummary] | Exception = []
        self.inference_profiles: list[InferenceProfileSummary] | Exception = []

    def invoke(self, model_id: str, content_type: str, body: bytes) -> bytes:
        self.calls.append((model_id, content_type, json.loads(body)))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def invoke_streaming(self, model_id: str, content_type: str, body: bytes) -> FakeEventStream:
        self.calls.append((model_id, content_type, json.loads(body)))
        if isinstance(self.response, Exception):
            raise self.response
        stream = FakeEventStream(list(self.stream_chunks), self.stream_error)
        self.streams.append(stream)
        return stream

    def list_foundation_models(self, modality_filter: str) -> list[FoundationModelSummary]:
        if isinstance(self.foundation_models, Exception):
            raise self.foundation_models
        return self.foundation_models

    def list_inference_profiles(
        self,
        type_filter: str,
        max_results: int,
    ) -> list[InferenceProfileSummary]:
        if isinstance(self.inference_profiles, Exception):
            raise self.inference_profiles
        return self.inference_profiles


def encode_chunks(*chunks: dict[str, Any]) -> list[bytes]:
    return [json.dumps(chunk).encode() for chunk in chunks]


def parse_sse(body: str) -> tuple[list[dict[str, Any]], bool]:
    chunks: list[dict[str, Any]] = []
    done = False
    for line in body.splitlines():
        if not line.startswith("data: "):
            continue
        raw_payload = line.removeprefix("data: ")
        if raw_payload == "[DONE]":
            done = True
            continue
        chunks.append(json.loads(raw_payload))
    return chunks, done
