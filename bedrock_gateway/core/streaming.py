"""Translation of a family-specific upstream event stream into ``StreamEvent``s.

One ``StreamTranslator`` exists per in-flight stream. It pulls a single
upstream event at a time, so the consumer's pace governs how fast the
upstream stream is read. The stream moves from ``OPEN`` to ``CLOSED`` exactly
once and the upstream stream is closed at that point. The last event emitted
is always a ``FinishReason`` or a ``StreamError``.
"""

from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from typing import Any, Iterator

from .codecs.base import ChatCodec
from .errors import AdapterError, MalformedUpstreamResponse, TransportError
from .finish_reason import map_finish_reason
from .transport import UpstreamEventStream
from .types import FinishReason, StreamError, StreamEvent, ToolCallDelta

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class StreamTranslator:
    def __init__(self, upstream: UpstreamEventStream, codec: ChatCodec) -> None:
        self._upstream = upstream
        self._codec = codec
        self._state = StreamState.OPEN
        self._cancelled = False
        self._lock = threading.Lock()
        self._tool_call_indexes: dict[int, int] = {}
        self._events = self._translate()

    @property
    def state(self) -> StreamState:
        return self._state

    def __iter__(self) -> Iterator[StreamEvent]:
        return self

    def __next__(self) -> StreamEvent:
        return next(self._events)

    def close(self) -> None:
        """Stop translating and release the upstream stream.

        May be called from another thread while a read is in flight. The
        upstream stream is closed immediately and the reading thread stops
        after its current upstream read without emitting further events.
        """

        self._cancelled = True
        self._finish()
        try:
            self._events.close()
        except ValueError:
            # Generator is executing in the reading thread; it checks the flag.
            pass

    def _translate(self) -> Iterator[StreamEvent]:
        last_event_unparseable = False

        try:
            try:
                for raw in self._read_upstream():
                    if self._cancelled:
                        return
                    try:
                        events = self._codec.decode_stream_chunk(_parse_chunk(raw))
                    except MalformedUpstreamResponse as exc:
                        logger.debug("Skipping unparseable stream event: %s", exc.message)
                        last_event_unparseable = True
                        continue

                    last_event_unparseable = False
                    for event in events:
                        if isinstance(event, FinishReason):
                            self._finish()
                            yield FinishReason(map_finish_reason(event.reason) or "stop")
                            return
                        if isinstance(event, ToolCallDelta):
                            event = self._renumber(event)
                        yield event
            except AdapterError as exc:
                if self._cancelled:
                    return
                logger.warning("Stream ended with upstream error: %s", exc.message)
                self._finish()
                yield StreamError(exc.message, error=exc)
                return

            if self._cancelled:
                return

            self._finish()
            if last_event_unparseable:
                error = MalformedUpstreamResponse(
                    message="stream ended with an unparseable event"
                )
                logger.warning("Stream ended with upstream error: %s", error.message)
                yield StreamError(error.message, error=error)
                return

            yield FinishReason("stop")
        finally:
            self._finish()

    def _read_upstream(self) -> Iterator[Any]:
        # Read failures the client did not classify (connection resets, read
        # timeouts) are still transport failures.
        try:
            yield from self._upstream
        except AdapterError:
            raise
        except Exception as exc:
            raise TransportError(message=f"upstream event stream failed: {exc}") from exc

    def _renumber(self, delta: ToolCallDelta) -> ToolCallDelta:
        # Upstream indexes count every content block; callers expect 0-based tool call ordinals.
        ordinal = self._tool_call_indexes.setdefault(delta.index, len(self._tool_call_indexes))
        return ToolCallDelta(
            index=ordinal,
            id=delta.id,
            name=delta.name,
            arguments=delta.arguments,
        )

    def _finish(self) -> None:
        with self._lock:
            if self._state is StreamState.CLOSED:
                return
            self._state = StreamState.CLOSED
        self._upstream.close()


def _parse_chunk(raw: bytes | str | dict[str, Any]) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw

    try:
        chunk = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedUpstreamResponse(message=f"invalid JSON in stream event: {exc}") from exc

    if not isinstance(chunk, dict):
        raise MalformedUpstreamResponse(message="stream event is not a JSON object")
    return chunk
