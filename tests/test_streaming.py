from __future__ import annotations

import json
from typing import AsyncIterator, Iterator, List

import httpx
import pytest
from prometheus_client import REGISTRY

from anthropic_client.config import ClientConfig
from anthropic_client.errors import AuthenticationError, InternalServerError, TransportError
from anthropic_client.executor import AsyncRequestExecutor, RequestExecutor
from anthropic_client.request import RequestDescriptor
from anthropic_client.streaming import SSEEvent, iter_events, parse_event, parse_line

SSE_BODY = (
    "event: message_start\n"
    'data: {"type": "message_start", "message": {"id": "msg_1"}}\n'
    "\n"
    ": keep-alive comment\n"
    "\n"
    "event: content_block_delta\n"
    'data: {"type": "content_block_delta", "delta": {"text": "Hi"}}\n'
    "\n"
    "event: ping\n"
    "\n"
    "event: message_stop\n"
    'data: {"type": "message_stop"}\n'
)


def test_two_events_decode_in_order() -> None:
    lines = [
        "event: first",
        'data: {"n": 1}',
        "",
        "event: second",
        'data: {"n": 2}',
        "",
    ]
    assert list(iter_events(lines)) == [SSEEvent("first", {"n": 1}), SSEEvent("second", {"n": 2})]


def test_missing_event_line_defaults_to_message() -> None:
    assert list(iter_events(['data: {"ok": true}', ""])) == [SSEEvent("message", {"ok": True})]


def test_empty_payload_is_dropped() -> None:
    lines = ["event: ping", "", "event: empty", "data:", "data: ", "", "data: kept", ""]
    assert list(iter_events(lines)) == [SSEEvent("message", "kept")]


def test_trailing_event_without_blank_line_is_emitted() -> None:
    assert list(iter_events(["event: done", "data: [DONE]"])) == [SSEEvent("done", "[DONE]")]


def test_data_lines_join_with_newlines_and_fall_back_to_text() -> None:
    event = parse_event(["data: first line", "data: second line"])
    assert event == SSEEvent("message", "first line\nsecond line")

    event = parse_event(["data: {", 'data: "a": 1', "data: }"])
    assert event == SSEEvent("message", {"a": 1})


def test_last_event_line_wins() -> None:
    assert parse_event(["event: a", "event: b", "data: 1"]) == SSEEvent("b", 1)


def test_parse_line_splits_on_first_colon() -> None:
    assert parse_line("data: a: b") == ("data", "a: b")
    assert parse_line("data:no-space") == ("data", "no-space")
    assert parse_line("data:  two spaces") == ("data", " two spaces")
    assert parse_line("no colon here") is None
    assert parse_line("   ") is None


def test_lines_without_colon_are_ignored() -> None:
    assert list(iter_events(["garbage", "data: 5", ""])) == [SSEEvent("message", 5)]


def test_events_are_pulled_lazily() -> None:
    consumed: List[str] = []

    def source() -> Iterator[str]:
        for line in ["data: 1", "", "data: 2", "", "data: 3", ""]:
            consumed.append(line)
            yield line

    events = iter_events(source())
    assert next(events) == SSEEvent("message", 1)
    assert consumed == ["data: 1", ""]
    assert next(events) == SSEEvent("message", 2)
    assert len(consumed) == 4


def _stream_executor(handler, calls: List[httpx.Request]) -> RequestExecutor:
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return RequestExecutor(
        ClientConfig(api_key="test-key", base_url="https://api.example.com"),
        transport=httpx.MockTransport(recording),
        sleep=lambda seconds: None,
        environ={},
    )


def test_stream_decodes_server_sent_events() -> None:
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == "text/event-stream"
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=SSE_BODY.encode())

    executor = _stream_executor(handler, calls)
    descriptor = RequestDescriptor(method="POST", path="v1/messages", body={"model": "m", "stream": True})

    with executor.stream(descriptor) as stream:
        events = list(stream)

    assert [event.event for event in events] == ["message_start", "content_block_delta", "message_stop"]
    assert events[1].data["delta"]["text"] == "Hi"
    assert stream.closed


def test_stream_error_status_is_not_retried() -> None:
    calls: List[httpx.Request] = []
    executor = _stream_executor(lambda request: httpx.Response(503, json={"error": "overloaded"}), calls)

    with pytest.raises(InternalServerError) as excinfo:
        executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))

    assert excinfo.value.body == {"error": "overloaded"}
    assert len(calls) == 1


def test_stream_authentication_error_carries_body() -> None:
    calls: List[httpx.Request] = []
    body = {"type": "error", "error": {"type": "authentication_error"}}
    executor = _stream_executor(lambda request: httpx.Response(401, json=body), calls)

    with pytest.raises(AuthenticationError) as excinfo:
        executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))

    assert excinfo.value.status == 401
    assert excinfo.value.body == body


def test_stream_transport_failure_fails_fast() -> None:
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    executor = _stream_executor(handler, calls)
    with pytest.raises(TransportError):
        executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))
    assert len(calls) == 1


def test_close_is_idempotent_and_stops_iteration() -> None:
    calls: List[httpx.Request] = []
    executor = _stream_executor(lambda request: httpx.Response(200, content=SSE_BODY.encode()), calls)

    stream = executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))
    assert next(stream).event == "message_start"
    stream.close()
    stream.close()

    assert stream.closed
    assert list(stream) == []


@pytest.mark.asyncio
async def test_async_stream_decodes_events() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=SSE_BODY.encode())

    executor = AsyncRequestExecutor(
        ClientConfig(api_key="test-key", base_url="https://api.example.com"),
        transport=httpx.MockTransport(handler),
        environ={},
    )
    async with executor:
        stream = await executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))
        async with stream:
            events = [event async for event in stream]
        await stream.aclose()

    assert [event.event for event in events] == ["message_start", "content_block_delta", "message_stop"]
    assert stream.closed


class ResetAfterFirstEvent(httpx.SyncByteStream):
    def __iter__(self) -> Iterator[bytes]:
        yield b'data: {"n": 1}\n\n'
        raise httpx.ReadError("connection reset")


class AsyncResetAfterFirstEvent(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield b'data: {"n": 1}\n\n'
        raise httpx.ReadError("connection reset")


def test_interrupted_stream_keeps_earlier_events_and_closes() -> None:
    calls: List[httpx.Request] = []
    executor = _stream_executor(lambda request: httpx.Response(200, stream=ResetAfterFirstEvent()), calls)
    stream = executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))

    received = [next(stream)]
    with pytest.raises(TransportError) as excinfo:
        next(stream)

    assert [event.data for event in received] == [{"n": 1}]
    assert isinstance(excinfo.value.__cause__, httpx.ReadError)
    assert stream.closed
    assert list(stream) == []


def _async_executor(handler, sleeps: List[float]) -> AsyncRequestExecutor:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return AsyncRequestExecutor(
        ClientConfig(api_key="test-key", base_url="https://api.example.com"),
        transport=httpx.MockTransport(handler),
        sleep=record_sleep,
        environ={},
    )


@pytest.mark.asyncio
async def test_async_interrupted_stream_keeps_earlier_events_and_closes() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=AsyncResetAfterFirstEvent())

    async with _async_executor(handler, []) as executor:
        stream = await executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))
        received = [await stream.__anext__()]
        with pytest.raises(TransportError):
            await stream.__anext__()

    assert [event.data for event in received] == [{"n": 1}]
    assert stream.closed


@pytest.mark.asyncio
async def test_async_early_close_finalizes_event_generator() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=SSE_BODY.encode())

    async with _async_executor(handler, []) as executor:
        stream = await executor.stream(RequestDescriptor(method="POST", path="v1/messages", body={}))
        assert (await stream.__anext__()).event == "message_start"
        await stream.aclose()
        await stream.aclose()

    assert stream.closed
    assert stream._events.ag_frame is None
    assert [event async for event in stream] == []


@pytest.mark.asyncio
async def test_async_connect_error_is_retried() -> None:
    sleeps: List[float] = []
    attempts: List[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": "msg_1"})

    async with _async_executor(handler, sleeps) as executor:
        result = await executor.execute(RequestDescriptor(method="POST", path="v1/messages", body={}))

    assert result == {"id": "msg_1"}
    assert len(attempts) == 3
    assert sleeps == [0.5, 1.0]


def test_unknown_event_names_share_one_metric_label() -> None:
    before = REGISTRY.get_sample_value("anthropic_client_stream_events_total", {"event": "other"}) or 0.0

    events = list(iter_events(["event: vendor_custom_1", "data: 1", "", "event: vendor_custom_2", "data: 2", ""]))

    after = REGISTRY.get_sample_value("anthropic_client_stream_events_total", {"event": "other"})
    assert [event.event for event in events] == ["vendor_custom_1", "vendor_custom_2"]
    assert after - before == 2
    assert REGISTRY.get_sample_value("anthropic_client_stream_events_total", {"event": "vendor_custom_1"}) is None
