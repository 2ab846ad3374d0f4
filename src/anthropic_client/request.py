"""Request descriptors and the pure helpers that turn them into HTTP calls."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from .config import API_VERSION, ClientConfig, ResolvedConfig

RETRYABLE_STATUSES = frozenset({408, 409, 429})


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None
    options: ClientConfig = field(default_factory=ClientConfig)


@dataclass(frozen=True)
class ResponseEnvelope:
    status: int
    body: Any
    headers: httpx.Headers = field(default_factory=httpx.Headers)


def build_headers(config: ResolvedConfig) -> httpx.Headers:
    headers = httpx.Headers(
        {
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )
    if config.api_key:
        headers["X-Api-Key"] = config.api_key
    if config.auth_token:
        headers["Authorization"] = f"Bearer {config.auth_token}"
    # Case-insensitive assignment so caller headers replace the defaults.
    for key, value in config.extra_headers.items():
        headers[key] = value
    return headers


def build_url(base_url: str, path: str, query: Optional[Mapping[str, Any]] = None) -> str:
    base = httpx.URL(base_url)
    # Keep any path prefix and query string already carried by the base address.
    url = base.copy_with(path=f"{base.path.rstrip('/')}/{path.lstrip('/')}")
    params = {key: value for key, value in (query or {}).items() if value is not None}
    if params:
        url = url.copy_merge_params(params)
    return str(url)


def build_body(body: Optional[Any], extra_body: Mapping[str, Any]) -> Optional[Any]:
    if body is None:
        return None
    if extra_body and isinstance(body, Mapping):
        return {**body, **extra_body}
    return body


def encode_body(body: Optional[Any]) -> Optional[bytes]:
    if body is None:
        return None
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


def should_retry(status: int) -> bool:
    return status in RETRYABLE_STATUSES or status >= 500


def decode_body(response: httpx.Response) -> Any:
    """JSON when the payload parses, the text otherwise, ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def build_request(
    client: httpx.Client | httpx.AsyncClient,
    descriptor: RequestDescriptor,
    config: ResolvedConfig,
    *,
    accept: Optional[str] = None,
) -> httpx.Request:
    headers = build_headers(config)
    if accept:
        headers["Accept"] = accept
    url = build_url(config.base_url, descriptor.path, {**descriptor.query, **config.extra_query})
    content = encode_body(build_body(descriptor.body, config.extra_body))
    return client.build_request(
        descriptor.method.upper(),
        url,
        headers=headers,
        content=content,
        timeout=httpx.Timeout(config.timeout),
    )


__all__ = [
    "RETRYABLE_STATUSES",
    "RequestDescriptor",
    "ResponseEnvelope",
    "build_body",
    "build_headers",
    "build_request",
    "build_url",
    "decode_body",
    "encode_body",
    "should_retry",
]
