"""Exception types raised by the Anthropic API client."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNPROCESSABLE_ENTITY = "unprocessable_entity"
    RATE_LIMIT = "rate_limit"
    INTERNAL_SERVER = "internal_server"
    UNEXPECTED_STATUS = "unexpected_status"
    API_ERROR = "api_error"
    TRANSPORT_FAILURE = "transport_failure"
    VALIDATION_ERROR = "validation_error"


class AnthropicError(Exception):
    """Base class for every failure surfaced by the client.

    ``status`` and ``body`` are populated whenever an HTTP response was
    received, so callers can branch on ``kind`` and still inspect the raw
    payload.
    """

    kind: ErrorKind = ErrorKind.API_ERROR

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Any = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.request_id = request_id

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (status={self.status})"


class ValidationError(AnthropicError):
    """A required argument was missing before any request was made."""

    kind = ErrorKind.VALIDATION_ERROR


class TransportError(AnthropicError):
    """Connection, DNS or timeout failure after the retry budget ran out."""

    kind = ErrorKind.TRANSPORT_FAILURE


class APIStatusError(AnthropicError):
    kind = ErrorKind.API_ERROR


class APIError(APIStatusError):
    kind = ErrorKind.API_ERROR


class UnexpectedStatusError(APIStatusError):
    kind = ErrorKind.UNEXPECTED_STATUS


class BadRequestError(APIStatusError):
    kind = ErrorKind.BAD_REQUEST


class AuthenticationError(APIStatusError):
    kind = ErrorKind.AUTHENTICATION


class PermissionDeniedError(APIStatusError):
    kind = ErrorKind.PERMISSION_DENIED


class NotFoundError(APIStatusError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(APIStatusError):
    kind = ErrorKind.CONFLICT


class UnprocessableEntityError(APIStatusError):
    kind = ErrorKind.UNPROCESSABLE_ENTITY


class RateLimitError(APIStatusError):
    kind = ErrorKind.RATE_LIMIT


class InternalServerError(APIStatusError):
    kind = ErrorKind.INTERNAL_SERVER


_STATUS_ERRORS: Dict[int, tuple[Type[APIStatusError], str]] = {
    400: (BadRequestError, "Bad Request"),
    401: (AuthenticationError, "Authentication Error"),
    403: (PermissionDeniedError, "Permission Denied"),
    404: (NotFoundError, "Not Found"),
    409: (ConflictError, "Conflict"),
    422: (UnprocessableEntityError, "Unprocessable Entity"),
    429: (RateLimitError, "Rate Limit Exceeded"),
}


def error_for_status(
    status: int,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> APIStatusError:
    """Build the exception matching a non-2xx status. The caller raises it."""
    request_id = headers.get("request-id") if headers is not None else None
    if status < 200:
        cls, message = UnexpectedStatusError, "Unexpected status code"
    elif status in _STATUS_ERRORS:
        cls, message = _STATUS_ERRORS[status]
    elif status >= 500:
        cls, message = InternalServerError, "Internal Server Error"
    else:
        cls, message = APIError, "API Error"
    return cls(message, status=status, body=body, request_id=request_id)


__all__ = [
    "APIError",
    "APIStatusError",
    "AnthropicError",
    "AuthenticationError",
    "BadRequestError",
    "ConflictError",
    "ErrorKind",
    "InternalServerError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "TransportError",
    "UnexpectedStatusError",
    "UnprocessableEntityError",
    "ValidationError",
    "error_for_status",
]
