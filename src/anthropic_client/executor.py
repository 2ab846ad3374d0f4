"""Request execution with bounded retry for the Anthropic API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from .config import ClientConfig, ResolvedConfig, RetryPolicy
from .errors import TransportError, error_for_status
from .metrics import REQUEST_COUNTER, REQUEST_LATENCY, RETRY_COUNTER
from .request import RequestDescriptor, ResponseEnvelope, build_request, decode_body, should_retry
from .streaming import AsyncEventStream, EventStream

logger = logging.getLogger("anthropic_client.executor")

EVENT_STREAM = "text/event-stream"


def interpret(envelope: ResponseEnvelope) -> Any:
    """Return the decoded body of a 2xx envelope, raise the mapped error otherwise."""
    if 200 <= envelope.status < 300:
        return envelope.body
    raise error_for_status(envelope.status, envelope.body, envelope.headers)


def _transport_error(request: httpx.Request, exc: Exception) -> TransportError:
    return TransportError(f"{request.method} {request.url} failed: {exc!r}")


def _log_retry(request: httpx.Request, attempt: int, policy: RetryPolicy, reason: str, detail: Any) -> float:
    delay = policy.delay_for(attempt)
    RETRY_COUNTER.labels(reason=reason).inc()
    logger.warning(
        "Retrying %s %s after %s=%s attempt=%s/%s delay=%.3fs",
        request.method,
        request.url.path,
        reason,
        detail,
        attempt + 1,
        policy.max_retries,
        delay,
    )
    return delay


def _envelope(response: httpx.Response) -> ResponseEnvelope:
    return ResponseEnvelope(status=response.status_code, body=decode_body(response), headers=response.headers)


class RequestExecutor:
    """Executes request descriptors over a blocking ``httpx.Client``."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._environ = environ
        self._sleep = sleep
        self._client = httpx.Client(transport=transport)

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def resolve(self, descriptor: RequestDescriptor) -> ResolvedConfig:
        return self._config.merge(descriptor.options).resolve(self._environ)

    def send(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        """Run the retry loop and return the final envelope, whatever its status."""
        config = self.resolve(descriptor)
        policy = config.retry
        request = build_request(self._client, descriptor, config)
        attempt = 0
        while True:
            started = time.perf_counter()
            try:
                response = self._client.send(request)
            except httpx.TransportError as exc:
                REQUEST_COUNTER.labels(method=request.method, outcome="transport_error").inc()
                if attempt >= policy.max_retries:
                    logger.debug("Giving up on %s %s after %s retries", request.method, request.url.path, attempt)
                    raise _transport_error(request, exc) from exc
                self._sleep(_log_retry(request, attempt, policy, "transport", type(exc).__name__))
                attempt += 1
                continue

            REQUEST_LATENCY.labels(method=request.method).observe(time.perf_counter() - started)
            REQUEST_COUNTER.labels(method=request.method, outcome=str(response.status_code)).inc()
            envelope = _envelope(response)
            if should_retry(envelope.status) and attempt < policy.max_retries:
                self._sleep(_log_retry(request, attempt, policy, "status", envelope.status))
                attempt += 1
                continue
            return envelope

    def execute(self, descriptor: RequestDescriptor) -> Any:
        return interpret(self.send(descriptor))

    def stream(self, descriptor: RequestDescriptor) -> EventStream:
        """Open a persistent connection and decode it as server-sent events.

        Streaming calls are never retried. A non-2xx status raises the same
        error types as :meth:`execute`, carrying the buffered error body.
        """
        config = self.resolve(descriptor)
        request = build_request(self._client, descriptor, config, accept=EVENT_STREAM)
        try:
            response = self._client.send(request, stream=True)
            if not 200 <= response.status_code < 300:
                try:
                    response.read()
                    envelope = _envelope(response)
                finally:
                    response.close()
                REQUEST_COUNTER.labels(method=request.method, outcome=str(envelope.status)).inc()
                raise error_for_status(envelope.status, envelope.body, envelope.headers)
        except httpx.TransportError as exc:
            REQUEST_COUNTER.labels(method=request.method, outcome="transport_error").inc()
            raise _transport_error(request, exc) from exc
        REQUEST_COUNTER.labels(method=request.method, outcome=str(response.status_code)).inc()
        logger.debug("Opened event stream %s %s", request.method, request.url.path)
        return EventStream(response)

    def close(self) -> None:
        self._client.close()


class AsyncRequestExecutor:
    """Asyncio counterpart of :class:`RequestExecutor` on ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._environ = environ
        self._sleep = sleep
        self._client = httpx.AsyncClient(transport=transport)

    async def __aenter__(self) -> "AsyncRequestExecutor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def resolve(self, descriptor: RequestDescriptor) -> ResolvedConfig:
        return self._config.merge(descriptor.options).resolve(self._environ)

    async def send(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        config = self.resolve(descriptor)
        policy = config.retry
        request = build_request(self._client, descriptor, config)
        attempt = 0
        while True:
            started = time.perf_counter()
            try:
                response = await self._client.send(request)
            except httpx.TransportError as exc:
                REQUEST_COUNTER.labels(method=request.method, outcome="transport_error").inc()
                if attempt >= policy.max_retries:
                    logger.debug("Giving up on %s %s after %s retries", request.method, request.url.path, attempt)
                    raise _transport_error(request, exc) from exc
                await self._sleep(_log_retry(request, attempt, policy, "transport", type(exc).__name__))
                attempt += 1
                continue

            REQUEST_LATENCY.labels(method=request.method).observe(time.perf_counter() - started)
            REQUEST_COUNTER.labels(method=request.method, outcome=str(response.status_code)).inc()
            envelope = _envelope(response)
            if should_retry(envelope.status) and attempt < policy.max_retries:
                await self._sleep(_log_retry(request, attempt, policy, "status", envelope.status))
                attempt += 1
                continue
            return envelope

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        return interpret(await self.send(descriptor))

    async def stream(self, descriptor: RequestDescriptor) -> AsyncEventStream:
        config = self.resolve(descriptor)
        request = build_request(self._client, descriptor, config, accept=EVENT_STREAM)
        try:
            response = await self._client.send(request, stream=True)
            if not 200 <= response.status_code < 300:
                try:
                    await response.aread()
                    envelope = _envelope(response)
                finally:
                    await response.aclose()
                REQUEST_COUNTER.labels(method=request.method, outcome=str(envelope.status)).inc()
                raise error_for_status(envelope.status, envelope.body, envelope.headers)
        except httpx.TransportError as exc:
            REQUEST_COUNTER.labels(method=request.method, outcome="transport_error").inc()
            raise _transport_error(request, exc) from exc
        REQUEST_COUNTER.labels(method=request.method, outcome=str(response.status_code)).inc()
        logger.debug("Opened event stream %s %s", request.method, request.url.path)
        return AsyncEventStream(response)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["AsyncRequestExecutor", "RequestExecutor", "interpret"]
