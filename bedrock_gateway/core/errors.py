from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class AdapterError(Exception):
    """Base class for failures surfaced by the model adapter core."""

    message: str
    code: str | None = None
    param: str | None = None
    status_code: int | None = None

    default_status: ClassVar[int] = 500
    default_code: ClassVar[str] = "internal_error"

    def __post_init__(self) -> None:
        if self.code is None:
            self.code = self.default_code
        if self.status_code is None:
            self.status_code = self.default_status

    def __str__(self) -> str:
        return self.message


class UnsupportedModel(AdapterError):
    default_status = 400
    default_code = "model_not_found"


class InvalidInput(AdapterError):
    default_status = 400
    default_code = "invalid_request"


class MalformedUpstreamResponse(AdapterError):
    """The upstream call succeeded but its body could not be interpreted."""

    default_status = 502
    default_code = "malformed_upstream_response"


class TransportError(AdapterError):
    """Network or service failure reported by the inference client."""

    default_status = 502
    default_code = "upstream_error"


class FetchError(AdapterError):
    default_status = 400
    default_code = "image_fetch_failed"
