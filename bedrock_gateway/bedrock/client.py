from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from urllib3.exceptions import HTTPError as URLLib3HTTPError

from bedrock_gateway.core.errors import TransportError
from bedrock_gateway.core.transport import FoundationModelSummary, InferenceProfileSummary

logger = logging.getLogger(__name__)


class BedrockEventStream:
    """Raw chunk bytes from ``invoke_model_with_response_stream``."""

    def __init__(self, event_stream: Any) -> None:
        self._event_stream = event_stream
        self._closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from iter_chunk_bytes(self._event_stream)
        except (ClientError, BotoCoreError, URLLib3HTTPError) as exc:
            raise to_transport_error(exc) from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._event_stream, "close", None)
        if close is not None:
            close()


class BedrockClient:
    """boto3 implementation of the four inference-service calls.

    Both boto3 clients are created once and shared; boto3 clients are safe
    to use from multiple threads.
    """

    def __init__(
        self,
        region: str,
        *,
        runtime_client: Any = None,
        control_client: Any = None,
    ) -> None:
        self._runtime = runtime_client or boto3.client("bedrock-runtime", region_name=region)
        self._control = control_client or boto3.client("bedrock", region_name=region)

    def invoke(self, model_id: str, content_type: str, body: bytes) -> bytes:
        try:
            response = self._runtime.invoke_model(
                modelId=model_id,
                contentType=content_type,
                accept="application/json",
                body=body,
            )
            return response["body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error(exc) from exc

    def invoke_streaming(self, model_id: str, content_type: str, body: bytes) -> BedrockEventStream:
        try:
            response = self._runtime.invoke_model_with_response_stream(
                modelId=model_id,
                contentType=content_type,
                accept="application/json",
                body=body,
            )
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error(exc) from exc

        return BedrockEventStream(response["body"])

    def list_foundation_models(self, modality_filter: str) -> list[FoundationModelSummary]:
        try:
            response = self._control.list_foundation_models(byOutputModality=modality_filter)
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error(exc) from exc

        return [
            FoundationModelSummary(
                id=summary["modelId"],
                lifecycle_status=(summary.get("modelLifecycle") or {}).get("status"),
                streaming_supported=summary.get("responseStreamingSupported"),
            )
            for summary in response.get("modelSummaries", [])
        ]

    def list_inference_profiles(
        self,
        type_filter: str,
        max_results: int,
    ) -> list[InferenceProfileSummary]:
        try:
            response = self._control.list_inference_profiles(
                typeEquals=type_filter,
                maxResults=max_results,
            )
        except (ClientError, BotoCoreError) as exc:
            raise to_transport_error(exc) from exc

        return [
            InferenceProfileSummary(
                id=summary["inferenceProfileId"],
                status=summary.get("status"),
            )
            for summary in response.get("inferenceProfileSummaries", [])
            if summary.get("inferenceProfileId")
        ]


def iter_chunk_bytes(events: Iterable[dict[str, Any]]) -> Iterator[bytes]:
    """Yield the payload of each ``chunk`` event; exception events become ``TransportError``."""

    for event in events:
        chunk = event.get("chunk")
        if chunk is not None:
            yield chunk.get("bytes", b"")
            continue

        for name, detail in event.items():
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            raise TransportError(
                message=message or name,
                code=name,
                status_code=_status_for_stream_exception(name),
            )


def to_transport_error(exc: ClientError | BotoCoreError | URLLib3HTTPError) -> TransportError:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        code = error.get("Code") or None
        logger.warning("Bedrock call failed: %s (%s)", code, status)
        return TransportError(
            message=error.get("Message") or str(exc),
            code=code,
            status_code=status if isinstance(status, int) and status >= 400 else None,
        )

    logger.warning("Bedrock call failed: %s", exc)
    return TransportError(message=str(exc))


_STREAM_EXCEPTION_STATUS = {
    "throttlingException": 429,
    "validationException": 400,
    "modelTimeoutException": 408,
    "serviceUnavailableException": 503,
    "internalServerException": 500,
    "modelStreamErrorException": 424,
}


def _status_for_stream_exception(name: str) -> int | None:
    return _STREAM_EXCEPTION_STATUS.get(name)
