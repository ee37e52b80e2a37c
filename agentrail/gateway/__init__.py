"""
Model Gateway Layer.

One async ``chat(request) -> ChatResult`` capability over several providers
(via LiteLLM), plus the pure primitives it is built from: cost estimation
and retry classification with exponential backoff.

    ChatRequest → ModelGateway.chat() → ChatResult(content, usage, cost)

Layers above depend only on the ``ChatFn`` shape, so tests and callers can
substitute any coroutine that accepts a ``ChatRequest``.
"""

from agentrail.gateway.cost import default_cost_table, estimate_cost
from agentrail.gateway.gateway import DEFAULT_MODEL_PROVIDER_MAP, ModelGateway
from agentrail.gateway.models import (
    ChatFn,
    ChatRequest,
    ChatResult,
    CostEstimate,
    CostTable,
    CostTableEntry,
    GatewayError,
    Message,
    ProviderError,
    ProviderName,
    RetryPolicy,
    Role,
    Usage,
)
from agentrail.gateway.request_logger import JsonRequestLogger, NullRequestLogger, RequestLogger
from agentrail.gateway.retry import is_retryable_error, with_retry

__all__ = [
    "DEFAULT_MODEL_PROVIDER_MAP",
    "ChatFn",
    "ChatRequest",
    "ChatResult",
    "CostEstimate",
    "CostTable",
    "CostTableEntry",
    "GatewayError",
    "JsonRequestLogger",
    "Message",
    "ModelGateway",
    "NullRequestLogger",
    "ProviderError",
    "ProviderName",
    "RequestLogger",
    "RetryPolicy",
    "Role",
    "Usage",
    "default_cost_table",
    "estimate_cost",
    "is_retryable_error",
    "with_retry",
]
