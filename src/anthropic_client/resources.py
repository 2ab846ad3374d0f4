"""Descriptor builders for the individual API endpoints.

Each function maps keyword parameters onto the wire body or query of one
endpoint and returns a :class:`RequestDescriptor`. Nothing here touches the
network; the executors do.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from .config import ClientConfig
from .errors import ValidationError
from .request import RequestDescriptor

MESSAGE_FIELDS = (
    "max_tokens",
    "messages",
    "model",
    "metadata",
    "service_tier",
    "stop_sequences",
    "system",
    "temperature",
    "thinking",
    "tool_choice",
    "tools",
    "top_k",
    "top_p",
)
COUNT_TOKENS_FIELDS = ("messages", "model", "system", "thinking", "tool_choice", "tools")
LIST_FIELDS = ("before_id", "after_id", "limit")

BETA_HEADER = "anthropic-beta"
MESSAGE_BATCHES_BETA = "message-batches-2024-09-24"
MODELS_BETA = "models-2024-11-21"


def shape(params: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Keep the listed fields that carry a value, in table order."""
    return {name: params[name] for name in fields if params.get(name) is not None}


def require(value: Any, name: str) -> Any:
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    return value


def with_beta(options: Optional[ClientConfig], features: Sequence[str]) -> ClientConfig:
    """Add an ``anthropic-beta`` header for ``features`` on top of ``options``."""
    options = options or ClientConfig()
    if not features:
        return options
    return options.merge(ClientConfig(extra_headers={BETA_HEADER: ",".join(features)}))


def create_message(*, options: Optional[ClientConfig] = None, stream: bool = False, **params: Any) -> RequestDescriptor:
    body = shape(params, MESSAGE_FIELDS)
    if stream:
        body["stream"] = True
    return RequestDescriptor(method="POST", path="v1/messages", body=body, options=options or ClientConfig())


def count_tokens(*, options: Optional[ClientConfig] = None, **params: Any) -> RequestDescriptor:
    return RequestDescriptor(
        method="POST",
        path="v1/messages/count_tokens",
        body=shape(params, COUNT_TOKENS_FIELDS),
        options=options or ClientConfig(),
    )


def list_models(*, options: Optional[ClientConfig] = None, **params: Any) -> RequestDescriptor:
    return RequestDescriptor(
        method="GET",
        path="v1/models",
        query=shape(params, LIST_FIELDS),
        options=options or ClientConfig(),
    )


def get_model(model_id: Optional[str], *, options: Optional[ClientConfig] = None) -> RequestDescriptor:
    require(model_id, "model_id")
    return RequestDescriptor(method="GET", path=f"v1/models/{model_id}", options=options or ClientConfig())


def create_beta_message(
    *,
    betas: Sequence[str] = (),
    options: Optional[ClientConfig] = None,
    stream: bool = False,
    **params: Any,
) -> RequestDescriptor:
    return create_message(options=with_beta(options, betas), stream=stream, **params)


def create_message_batch(
    requests: Optional[Sequence[Mapping[str, Any]]],
    *,
    options: Optional[ClientConfig] = None,
) -> RequestDescriptor:
    if not requests:
        raise ValidationError("requests is required and must not be empty")
    return RequestDescriptor(
        method="POST",
        path="v1/messages/batches",
        body={"requests": list(requests)},
        options=with_beta(options, [MESSAGE_BATCHES_BETA]),
    )


def get_message_batch(batch_id: Optional[str], *, options: Optional[ClientConfig] = None) -> RequestDescriptor:
    require(batch_id, "batch_id")
    return RequestDescriptor(
        method="GET",
        path=f"v1/messages/batches/{batch_id}",
        options=with_beta(options, [MESSAGE_BATCHES_BETA]),
    )


def list_message_batches(*, options: Optional[ClientConfig] = None, **params: Any) -> RequestDescriptor:
    return RequestDescriptor(
        method="GET",
        path="v1/messages/batches",
        query=shape(params, LIST_FIELDS),
        options=with_beta(options, [MESSAGE_BATCHES_BETA]),
    )


def cancel_message_batch(batch_id: Optional[str], *, options: Optional[ClientConfig] = None) -> RequestDescriptor:
    require(batch_id, "batch_id")
    return RequestDescriptor(
        method="POST",
        path=f"v1/messages/batches/{batch_id}/cancel",
        options=with_beta(options, [MESSAGE_BATCHES_BETA]),
    )


def get_message_batch_results(batch_id: Optional[str], *, options: Optional[ClientConfig] = None) -> RequestDescriptor:
    require(batch_id, "batch_id")
    return RequestDescriptor(
        method="GET",
        path=f"v1/messages/batches/{batch_id}/results",
        options=with_beta(options, [MESSAGE_BATCHES_BETA]),
    )


def list_beta_models(*, options: Optional[ClientConfig] = None, **params: Any) -> RequestDescriptor:
    return list_models(options=with_beta(options, [MODELS_BETA]), **params)


def get_beta_model(model_id: Optional[str], *, options: Optional[ClientConfig] = None) -> RequestDescriptor:
    return get_model(model_id, options=with_beta(options, [MODELS_BETA]))


__all__ = [
    "COUNT_TOKENS_FIELDS",
    "LIST_FIELDS",
    "MESSAGE_FIELDS",
    "cancel_message_batch",
    "count_tokens",
    "create_beta_message",
    "create_message",
    "create_message_batch",
    "get_beta_model",
    "get_message_batch",
    "get_message_batch_results",
    "get_model",
    "list_beta_models",
    "list_message_batches",
    "list_models",
    "require",
    "shape",
    "with_beta",
]
