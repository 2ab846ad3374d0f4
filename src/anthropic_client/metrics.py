"""Prometheus instruments shared by the executors, streams and paginators."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
    "anthropic_client_requests_total",
    "HTTP attempts issued by the client",
    ["method", "outcome"],
)
RETRY_COUNTER = Counter(
    "anthropic_client_retries_total",
    "Attempts retried after a transient failure",
    ["reason"],
)
REQUEST_LATENCY = Histogram(
    "anthropic_client_request_latency_seconds",
    "Latency of a single HTTP attempt",
    ["method"],
)
STREAM_EVENT_COUNTER = Counter(
    "anthropic_client_stream_events_total",
    "Server-sent events decoded from streaming responses",
    ["event"],
)
PAGE_COUNTER = Counter("anthropic_client_pages_fetched_total", "Pages fetched by list traversals")


__all__ = ["PAGE_COUNTER", "REQUEST_COUNTER", "REQUEST_LATENCY", "RETRY_COUNTER", "STREAM_EVENT_COUNTER"]
