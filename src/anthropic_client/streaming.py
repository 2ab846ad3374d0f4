"""Server-sent event decoding for streaming responses.

Events are framed by blank lines. Within a frame the last ``event:`` line
names the event (``"message"`` when absent) and every ``data:`` line is
joined with newlines to form the payload, which is decoded as JSON when
possible and left as text otherwise. Frames without payload text are
dropped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Iterator, List, Optional, Tuple

import httpx

from .errors import TransportError
from .metrics import STREAM_EVENT_COUNTER

logger = logging.getLogger("anthropic_client.streaming")

DEFAULT_EVENT = "message"
OTHER_EVENT = "other"

# Metric label values; anything else the server sends is counted as OTHER_EVENT.
KNOWN_EVENTS = frozenset(
    {
        DEFAULT_EVENT,
        "message_start",
        "message_delta",
        "message_stop",
        "content_block_start",
        "content_block_delta",
        "content_block_stop",
        "ping",
        "error",
    }
)


@dataclass(frozen=True)
class SSEEvent:
    event: str
    data: Any


def parse_line(line: str) -> Optional[Tuple[str, str]]:
    """Split ``field: value`` at the first colon; lines without one are ignored."""
    if not line.strip():
        return None
    name, sep, value = line.partition(":")
    if not sep:
        return None
    if value.startswith(" "):
        value = value[1:]
    return name, value


def _decode_payload(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def parse_event(lines: Iterable[str]) -> Optional[SSEEvent]:
    event_name: Optional[str] = None
    data_lines: List[str] = []
    for line in lines:
        parsed = parse_line(line)
        if parsed is None:
            continue
        name, value = parsed
        if name == "event":
            event_name = value
        elif name == "data":
            data_lines.append(value)

    payload = "\n".join(data_lines)
    if not payload.strip():
        return None
    return SSEEvent(event=event_name or DEFAULT_EVENT, data=_decode_payload(payload))


def _emit(buffer: List[str]) -> Optional[SSEEvent]:
    event = parse_event(buffer)
    if event is not None:
        label = event.event if event.event in KNOWN_EVENTS else OTHER_EVENT
        STREAM_EVENT_COUNTER.labels(event=label).inc()
    return event


def iter_events(lines: Iterable[str]) -> Iterator[SSEEvent]:
    buffer: List[str] = []
    for line in lines:
        if line.strip():
            buffer.append(line)
            continue
        if buffer:
            event = _emit(buffer)
            buffer = []
            if event is not None:
                yield event
    # A stream may end without the terminating blank line.
    if buffer:
        event = _emit(buffer)
        if event is not None:
            yield event


async def aiter_events(lines: AsyncIterable[str]) -> AsyncIterator[SSEEvent]:
    buffer: List[str] = []
    async for line in lines:
        if line.strip():
            buffer.append(line)
            continue
        if buffer:
            event = _emit(buffer)
            buffer = []
            if event is not None:
                yield event
    if buffer:
        event = _emit(buffer)
        if event is not None:
            yield event


class EventStream:
    """Lazy, single-pass sequence of events read from an open response.

    The stream owns the connection until :meth:`close` is called; iterate it
    once, inside ``with`` or with an explicit ``close`` on every exit path.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._events = iter_events(response.iter_lines())
        self._closed = False

    @property
    def response(self) -> httpx.Response:
        return self._response

    def __iter__(self) -> Iterator[SSEEvent]:
        return self

    def __next__(self) -> SSEEvent:
        if self._closed:
            raise StopIteration
        try:
            return next(self._events)
        except httpx.TransportError as exc:
            self.close()
            raise TransportError(f"Event stream interrupted: {exc!r}") from exc

    def __enter__(self) -> "EventStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._events.close()
        try:
            self._response.close()
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Ignoring error while closing stream: %s", exc)

    @property
    def closed(self) -> bool:
        return self._closed


class AsyncEventStream:
    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._events = aiter_events(response.aiter_lines())
        self._closed = False

    @property
    def response(self) -> httpx.Response:
        return self._response

    def __aiter__(self) -> AsyncIterator[SSEEvent]:
        return self

    async def __anext__(self) -> SSEEvent:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._events.__anext__()
        except httpx.TransportError as exc:
            await self.aclose()
            raise TransportError(f"Event stream interrupted: {exc!r}") from exc

    async def __aenter__(self) -> "AsyncEventStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._events.aclose()
        try:
            await self._response.aclose()
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Ignoring error while closing stream: %s", exc)

    @property
    def closed(self) -> bool:
        return self._closed


__all__ = [
    "AsyncEventStream",
    "DEFAULT_EVENT",
    "KNOWN_EVENTS",
    "EventStream",
    "SSEEvent",
    "aiter_events",
    "iter_events",
    "parse_event",
    "parse_line",
]
