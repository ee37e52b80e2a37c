"""
Data models and exceptions for the model gateway.

The message shape defined here is shared by every layer above the gateway:
the context store keeps lists of ``Message`` and the tool loop sends them
straight back out in a ``ChatRequest``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

Role = Literal["system", "user", "assistant"]


class ProviderName(str, Enum):
    """Providers the gateway knows how to route to."""

    GOOGLE = "google"
    GLM = "glm"
    DEEPSEEK = "deepseek"


class Message(BaseModel):
    """A single chat message. Role is never reinterpreted once stored."""

    role: Role
    content: str

    model_config = ConfigDict(frozen=True)


class ChatRequest(BaseModel):
    """A single chat call. Everything except ``messages`` is optional."""

    messages: list[Message]
    model: str | None = None
    provider: ProviderName | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(None, gt=0)
    timeout_seconds: float | None = Field(None, gt=0)
    request_id: str | None = None


class Usage(BaseModel):
    """Token usage as reported by the provider."""

    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)

    @computed_field
    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class CostEstimate(BaseModel):
    """Estimated cost of one chat call, in cents."""

    input_cents: float = 0.0
    output_cents: float = 0.0
    total_cents: float = 0.0
    currency: str = "USD"


class ChatResult(BaseModel):
    """Uniform result of a chat call, independent of provider."""

    content: str
    role: Literal["assistant"] = "assistant"
    usage: Usage | None = None
    finish_reason: str | None = None
    cost: CostEstimate | None = None
    model: str | None = None
    provider: ProviderName | None = None
    request_id: str | None = None
    # Raw provider response, kept for debugging/replay only; never interpreted
    raw: Any = Field(default=None, exclude=True, repr=False)


class RetryPolicy(BaseModel):
    """Exponential backoff policy for a single network attempt."""

    max_retries: int = Field(2, ge=0)
    backoff_seconds: float = Field(0.3, ge=0)
    max_backoff_seconds: float | None = Field(2.0, ge=0)
    jitter: float = Field(0.2, ge=0, le=1)


class CostTableEntry(BaseModel):
    """Per-model prices in cents per 1k tokens."""

    input_cents_per_1k: float = Field(ge=0)
    output_cents_per_1k: float = Field(ge=0)
    currency: str = "USD"


CostTable = dict[str, CostTableEntry]

# The chat capability every layer above the gateway depends on
ChatFn = Callable[[ChatRequest], Awaitable[ChatResult]]


class GatewayError(Exception):
    """Raised when the gateway cannot route or complete a chat request."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ProviderError(GatewayError):
    """A provider call failed; ``status`` carries the HTTP status when known."""

    def __init__(
        self,
        message: str,
        provider: ProviderName,
        status: int | None = None,
        code: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.provider = provider
        self.status = status
        self.code = code


# ---------------------------------------------------------------------------
# Request log events
# ---------------------------------------------------------------------------


class RequestLog(BaseModel):
    timestamp: str
    request_id: str
    model: str
    provider: ProviderName
    message_count: int
    timeout_seconds: float | None = None


class ResponseLog(BaseModel):
    timestamp: str
    request_id: str
    model: str
    provider: ProviderName
    duration_ms: int
    usage: Usage | None = None
    finish_reason: str | None = None
    cost: CostEstimate | None = None


class ErrorDetails(BaseModel):
    name: str
    message: str
    status: int | None = None
    code: str | None = None


class ErrorLog(BaseModel):
    timestamp: str
    request_id: str
    model: str
    provider: ProviderName
    duration_ms: int
    error: ErrorDetails
