"""Python client for the Anthropic HTTP API."""

from .client import AsyncClient, Client
from .config import ClientConfig, RetryPolicy
from .errors import (
    AnthropicError,
    APIError,
    APIStatusError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ErrorKind,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TransportError,
    UnexpectedStatusError,
    UnprocessableEntityError,
    ValidationError,
)
from .executor import AsyncRequestExecutor, RequestExecutor
from .pagination import Cursor, fetch_all, iter_items, iter_pages
from .request import RequestDescriptor, ResponseEnvelope
from .streaming import AsyncEventStream, EventStream, SSEEvent

__all__ = [
    "APIError",
    "APIStatusError",
    "AnthropicError",
    "AsyncClient",
    "AsyncEventStream",
    "AsyncRequestExecutor",
    "AuthenticationError",
    "BadRequestError",
    "Client",
    "ClientConfig",
    "ConflictError",
    "Cursor",
    "ErrorKind",
    "EventStream",
    "InternalServerError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "RequestDescriptor",
    "RequestExecutor",
    "ResponseEnvelope",
    "RetryPolicy",
    "SSEEvent",
    "TransportError",
    "UnexpectedStatusError",
    "UnprocessableEntityError",
    "ValidationError",
    "fetch_all",
    "iter_items",
    "iter_pages",
]
