"""Client facades bundling the endpoint namespaces over one executor.

The namespaces only build descriptors and hand them to the executor, so the
same classes serve :class:`Client` (values) and :class:`AsyncClient`
(awaitables and async iterators).
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

import httpx

from . import pagination, resources
from .config import ClientConfig
from .errors import ValidationError
from .executor import AsyncRequestExecutor, RequestExecutor

Executor = Any  # RequestExecutor | AsyncRequestExecutor


class _Namespace:
    def __init__(self, executor: Executor) -> None:
        self._executor = executor


def _reject_stream(params: Mapping[str, Any]) -> None:
    if params.get("stream"):
        raise ValidationError("stream=True is not supported here; use stream() instead")


class Messages(_Namespace):
    def create(self, *, options: Optional[ClientConfig] = None, **params: Any):
        _reject_stream(params)
        return self._executor.execute(resources.create_message(options=options, **params))

    def stream(self, *, options: Optional[ClientConfig] = None, **params: Any):
        """Open an event stream for a message; close it when done."""
        params.pop("stream", None)
        return self._executor.stream(resources.create_message(options=options, stream=True, **params))

    def count_tokens(self, *, options: Optional[ClientConfig] = None, **params: Any):
        return self._executor.execute(resources.count_tokens(options=options, **params))


class _Listing(_Namespace, ABC):
    @abstractmethod
    def list(self, *, options: Optional[ClientConfig] = None, **params: Any):
        """Fetch one page of the listing."""

    @property
    def _is_async(self) -> bool:
        return isinstance(self._executor, AsyncRequestExecutor)

    def _fetcher(self, options: Optional[ClientConfig]):
        return lambda params: self.list(options=options, **params)

    def iter(self, *, options: Optional[ClientConfig] = None, **params: Any):
        """Lazily yield every item across pages, starting from ``params``."""
        traverse = pagination.aiter_items if self._is_async else pagination.iter_items
        return traverse(self._fetcher(options), params)

    def iter_pages(self, *, options: Optional[ClientConfig] = None, **params: Any):
        traverse = pagination.aiter_pages if self._is_async else pagination.iter_pages
        return traverse(self._fetcher(options), params)

    def list_all(self, *, options: Optional[ClientConfig] = None, **params: Any):
        collect = pagination.afetch_all if self._is_async else pagination.fetch_all
        return collect(self._fetcher(options), params)


class Models(_Listing):
    def list(self, *, options: Optional[ClientConfig] = None, **params: Any):
        return self._executor.execute(resources.list_models(options=options, **params))

    def get(self, model_id: Optional[str], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.get_model(model_id, options=options))


class BetaModels(_Listing):
    def list(self, *, options: Optional[ClientConfig] = None, **params: Any):
        return self._executor.execute(resources.list_beta_models(options=options, **params))

    def get(self, model_id: Optional[str], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.get_beta_model(model_id, options=options))


class BetaMessages(_Namespace):
    def create(self, *, betas: Sequence[str] = (), options: Optional[ClientConfig] = None, **params: Any):
        _reject_stream(params)
        return self._executor.execute(resources.create_beta_message(betas=betas, options=options, **params))

    def stream(self, *, betas: Sequence[str] = (), options: Optional[ClientConfig] = None, **params: Any):
        params.pop("stream", None)
        descriptor = resources.create_beta_message(betas=betas, options=options, stream=True, **params)
        return self._executor.stream(descriptor)


class MessageBatches(_Listing):
    def create(self, requests: Sequence[Mapping[str, Any]], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.create_message_batch(requests, options=options))

    def get(self, batch_id: Optional[str], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.get_message_batch(batch_id, options=options))

    def list(self, *, options: Optional[ClientConfig] = None, **params: Any):
        return self._executor.execute(resources.list_message_batches(options=options, **params))

    def cancel(self, batch_id: Optional[str], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.cancel_message_batch(batch_id, options=options))

    def results(self, batch_id: Optional[str], *, options: Optional[ClientConfig] = None):
        return self._executor.execute(resources.get_message_batch_results(batch_id, options=options))


class Beta(_Namespace):
    def __init__(self, executor: Executor) -> None:
        super().__init__(executor)
        self.messages = BetaMessages(executor)
        self.message_batches = MessageBatches(executor)
        self.models = BetaModels(executor)


class Client:
    """Blocking client.

    Example:
        ```python
        with Client(ClientConfig(api_key="sk-...")) as client:
            message = client.messages.create(
                model="claude-sonnet-4-20250514",
                max_tokens=1024,
                messages=[{"role": "user", "content": "Hello"}],
            )
        ```
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._executor = RequestExecutor(config, transport=transport, sleep=sleep, environ=environ)
        self.messages = Messages(self._executor)
        self.models = Models(self._executor)
        self.beta = Beta(self._executor)

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._executor.close()


class AsyncClient:
    """Asyncio client; every call returns an awaitable or an async iterator."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._executor = AsyncRequestExecutor(config, transport=transport, sleep=sleep, environ=environ)
        self.messages = Messages(self._executor)
        self.models = Models(self._executor)
        self.beta = Beta(self._executor)

    @property
    def executor(self) -> AsyncRequestExecutor:
        return self._executor

    async def __aenter__(self) -> "AsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._executor.aclose()


__all__ = ["AsyncClient", "Client"]
