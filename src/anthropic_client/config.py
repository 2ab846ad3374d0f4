"""Configuration objects for the Anthropic API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

DEFAULT_BASE_URL = "https://api.anthropic.com"
API_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_RETRY_DELAY = 0.5
DEFAULT_MAX_RETRY_DELAY = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    max_delay: float = DEFAULT_MAX_RETRY_DELAY

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-indexed), capped at ``max_delay``."""
        return min(self.initial_delay * (2 ** attempt), self.max_delay)


@dataclass(frozen=True)
class ResolvedConfig:
    """Fully populated settings for a single call."""

    api_key: Optional[str]
    auth_token: Optional[str]
    base_url: str
    timeout: float
    retry: RetryPolicy
    extra_headers: Dict[str, str] = field(default_factory=dict)
    extra_query: Dict[str, Any] = field(default_factory=dict)
    extra_body: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClientConfig:
    """Client or per-call settings; ``None`` means "not set here"."""

    api_key: Optional[str] = None
    auth_token: Optional[str] = None
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    max_retries: Optional[int] = None
    initial_retry_delay: Optional[float] = None
    max_retry_delay: Optional[float] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)
    extra_query: Dict[str, Any] = field(default_factory=dict)
    extra_body: Dict[str, Any] = field(default_factory=dict)

    def merge(self, overrides: Optional["ClientConfig"]) -> "ClientConfig":
        """Layer ``overrides`` on top of this config, key by key for mappings."""
        if overrides is None:
            return self

        def pick(name: str) -> Any:
            value = getattr(overrides, name)
            return getattr(self, name) if value is None else value

        return replace(
            self,
            api_key=pick("api_key"),
            auth_token=pick("auth_token"),
            base_url=pick("base_url"),
            timeout=pick("timeout"),
            max_retries=pick("max_retries"),
            initial_retry_delay=pick("initial_retry_delay"),
            max_retry_delay=pick("max_retry_delay"),
            extra_headers={**self.extra_headers, **overrides.extra_headers},
            extra_query={**self.extra_query, **overrides.extra_query},
            extra_body={**self.extra_body, **overrides.extra_body},
        )

    def resolve(self, environ: Optional[Mapping[str, str]] = None) -> ResolvedConfig:
        env = os.environ if environ is None else environ

        max_retries = self.max_retries
        if max_retries is None:
            raw = env.get("ANTHROPIC_MAX_RETRIES")
            max_retries = int(raw) if raw else DEFAULT_MAX_RETRIES

        timeout = self.timeout
        if timeout is None:
            raw = env.get("ANTHROPIC_TIMEOUT")
            timeout = float(raw) if raw else DEFAULT_TIMEOUT

        retry = RetryPolicy(
            max_retries=max_retries,
            initial_delay=(
                DEFAULT_INITIAL_RETRY_DELAY if self.initial_retry_delay is None else self.initial_retry_delay
            ),
            max_delay=DEFAULT_MAX_RETRY_DELAY if self.max_retry_delay is None else self.max_retry_delay,
        )

        return ResolvedConfig(
            api_key=self.api_key or env.get("ANTHROPIC_API_KEY") or None,
            auth_token=self.auth_token or env.get("ANTHROPIC_AUTH_TOKEN") or None,
            base_url=self.base_url or env.get("ANTHROPIC_BASE_URL") or DEFAULT_BASE_URL,
            timeout=timeout,
            retry=retry,
            extra_headers=dict(self.extra_headers),
            extra_query=dict(self.extra_query),
            extra_body=dict(self.extra_body),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Snapshot the environment into an explicit config."""
        resolved = cls().resolve(environ)
        return cls(
            api_key=resolved.api_key,
            auth_token=resolved.auth_token,
            base_url=resolved.base_url,
            timeout=resolved.timeout,
            max_retries=resolved.retry.max_retries,
        )


__all__ = [
    "API_VERSION",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "ResolvedConfig",
    "RetryPolicy",
]
