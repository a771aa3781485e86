from __future__ import annotations

import io
import json

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber
from urllib3.exceptions import ProtocolError

from bedrock_gateway.bedrock.client import BedrockClient, BedrockEventStream, iter_chunk_bytes
from bedrock_gateway.core.errors import TransportError
from bedrock_gateway.core.transport import FoundationModelSummary, InferenceProfileSummary


class _RecordingRuntime:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def invoke_model(self, **kwargs):
        self.calls.append(("invoke_model", kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def invoke_model_with_response_stream(self, **kwargs):
        self.calls.append(("invoke_model_with_response_stream", kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class _ClosableEvents:
    def __init__(self, events: list[dict]) -> None:
        self._events = events
        self.close_calls = 0

    def __iter__(self):
        return iter(self._events)

    def close(self) -> None:
        self.close_calls += 1


def _client_error(code: str, status: int, operation: str = "InvokeModel") -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": "service said no"}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


@pytest.fixture
def control():
    return boto3.client(
        "bedrock",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_invoke_sends_json_body_and_reads_reply(control):
    runtime = _RecordingRuntime(response={"body": io.BytesIO(b'{"completion": "hi"}')})
    client = BedrockClient("us-east-1", runtime_client=runtime, control_client=control)

    body = json.dumps({"prompt": "x"}).encode()

    assert client.invoke("anthropic.claude-v2", "application/json", body) == b'{"completion": "hi"}'
    assert runtime.calls == [
        (
            "invoke_model",
            {
                "modelId": "anthropic.claude-v2",
                "contentType": "application/json",
                "accept": "application/json",
                "body": body,
            },
        )
    ]


def test_invoke_client_error_keeps_service_status_and_code(control):
    runtime = _RecordingRuntime(error=_client_error("ThrottlingException", 429))
    client = BedrockClient("us-east-1", runtime_client=runtime, control_client=control)

    with pytest.raises(TransportError) as excinfo:
        client.invoke("anthropic.claude-v2", "application/json", b"{}")

    assert excinfo.value.status_code == 429
    assert excinfo.value.code == "ThrottlingException"
    assert excinfo.value.message == "service said no"


def test_connection_failure_is_transport_error_with_bad_gateway(control):
    runtime = _RecordingRuntime(error=EndpointConnectionError(endpoint_url="https://bedrock.invalid"))
    client = BedrockClient("us-east-1", runtime_client=runtime, control_client=control)

    with pytest.raises(TransportError) as excinfo:
        client.invoke_streaming("anthropic.claude-v2", "application/json", b"{}")

    assert excinfo.value.status_code == 502
    assert excinfo.value.code == "upstream_error"


def test_list_foundation_models_maps_summaries(control):
    runtime = _RecordingRuntime()
    with Stubber(control) as stubber:
        stubber.add_response(
            "list_foundation_models",
            {
                "modelSummaries": [
                    {
                        "modelArn": "arn:aws:bedrock:us-east-1::foundation-model/meta.llama3-8b-instruct-v1:0",
                        "modelId": "meta.llama3-8b-instruct-v1:0",
                        "responseStreamingSupported": True,
                        "modelLifecycle": {"status": "ACTIVE"},
                    },
                    {
                        "modelArn": "arn:aws:bedrock:us-east-1::foundation-model/amazon.titan-tg1-large",
                        "modelId": "amazon.titan-tg1-large",
                    },
                ]
            },
            {"byOutputModality": "TEXT"},
        )

        models = BedrockClient(
            "us-east-1", runtime_client=runtime, control_client=control
        ).list_foundation_models("TEXT")

    assert models == [
        FoundationModelSummary("meta.llama3-8b-instruct-v1:0", "ACTIVE", True),
        FoundationModelSummary("amazon.titan-tg1-large", None, None),
    ]


def test_list_inference_profiles_requests_system_defined(control):
    runtime = _RecordingRuntime()
    with Stubber(control) as stubber:
        stubber.add_response(
            "list_inference_profiles",
            {
                "inferenceProfileSummaries": [
                    {
                        "inferenceProfileName": "US Claude 3 Haiku",
                        "inferenceProfileArn": "arn:aws:bedrock:us-east-1:123456789012:inference-profile/us.anthropic.claude-3-haiku-20240307-v1:0",
                        "inferenceProfileId": "us.anthropic.claude-3-haiku-20240307-v1:0",
                        "models": [],
                        "status": "ACTIVE",
                        "type": "SYSTEM_DEFINED",
                    }
                ]
            },
            {"typeEquals": "SYSTEM_DEFINED", "maxResults": 1000},
        )

        profiles = BedrockClient(
            "us-east-1", runtime_client=runtime, control_client=control
        ).list_inference_profiles("SYSTEM_DEFINED", 1000)

    assert profiles == [
        InferenceProfileSummary("us.anthropic.claude-3-haiku-20240307-v1:0", "ACTIVE")
    ]


def test_listing_error_becomes_transport_error(control):
    with Stubber(control) as stubber:
        stubber.add_client_error(
            "list_foundation_models",
            service_error_code="AccessDeniedException",
            service_message="not allowed",
            http_status_code=403,
        )

        with pytest.raises(TransportError) as excinfo:
            BedrockClient(
                "us-east-1", runtime_client=_RecordingRuntime(), control_client=control
            ).list_foundation_models("TEXT")

    assert excinfo.value.status_code == 403
    assert excinfo.value.code == "AccessDeniedException"


def test_iter_chunk_bytes_yields_payloads_then_raises_on_exception_event():
    events = [
        {"chunk": {"bytes": b'{"a": 1}'}},
        {"chunk": {"bytes": b'{"b": 2}'}},
        {"throttlingException": {"message": "Too many requests"}},
        {"chunk": {"bytes": b"never"}},
    ]

    chunks = iter_chunk_bytes(events)

    assert next(chunks) == b'{"a": 1}'
    assert next(chunks) == b'{"b": 2}'
    with pytest.raises(TransportError) as excinfo:
        next(chunks)

    assert excinfo.value.status_code == 429
    assert excinfo.value.code == "throttlingException"
    assert excinfo.value.message == "Too many requests"


def test_event_stream_close_is_idempotent():
    events = _ClosableEvents([{"chunk": {"bytes": b"{}"}}])
    stream = BedrockEventStream(events)

    assert list(stream) == [b"{}"]

    stream.close()
    stream.close()

    assert events.close_calls == 1


def test_invoke_streaming_wraps_response_body(control):
    events = _ClosableEvents([{"chunk": {"bytes": b'{"generation": "x"}'}}])
    runtime = _RecordingRuntime(response={"body": events})
    client = BedrockClient("us-east-1", runtime_client=runtime, control_client=control)

    stream = client.invoke_streaming("meta.llama3-8b-instruct-v1:0", "application/json", b"{}")

    assert list(stream) == [b'{"generation": "x"}']
    assert runtime.calls[0][0] == "invoke_model_with_response_stream"


def test_event_stream_read_failure_is_transport_error():
    def events():
        yield {"chunk": {"bytes": b'{"generation": "x"}'}}
        raise ProtocolError("Connection broken", ConnectionResetError("reset"))

    stream = BedrockEventStream(events())
    chunks = iter(stream)

    assert next(chunks) == b'{"generation": "x"}'
    with pytest.raises(TransportError) as excinfo:
        next(chunks)

    assert excinfo.value.status_code == 502
    assert excinfo.value.code == "upstream_error"
