"""
Model Gateway: the single ``chat(request) -> ChatResult`` capability.

Everything above this layer sees one async chat function. The gateway
hides provider routing, credentials, per-attempt timeouts, retry with
backoff, fallback across models, request logging and cost estimation.

Data flow for one ``chat()`` call:

    ChatRequest
        ↓  resolve model (request → default) and fallback list
    for each candidate model:
        resolve provider (explicit → model map) and credentials
        log request
        with_retry( wait_for( litellm.acompletion ) )
        ├─ success → log response, estimate cost → ChatResult
        └─ failure → log error, try next candidate
    all candidates failed → raise last error

Design decisions:
- Provider HTTP wire formats are delegated to LiteLLM; the gateway only
  decides which LiteLLM route, key and base URL to use. GLM exposes an
  OpenAI-compatible API, so it is routed through LiteLLM's ``openai/``
  adapter with the GLM endpoint as ``api_base``.
- Routing errors (unknown model, unconfigured provider) raise immediately
  instead of falling back: they are configuration mistakes, not outages.
- Retry lives inside each candidate; fallback only starts once a model's
  retry budget is spent or a fatal error occurs.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from litellm import acompletion

from agentrail.config.settings import GatewaySettings, ProviderSettings
from agentrail.gateway.cost import default_cost_table, estimate_cost
from agentrail.gateway.models import (
    ChatRequest,
    ChatResult,
    CostTable,
    ErrorDetails,
    ErrorLog,
    GatewayError,
    ProviderError,
    ProviderName,
    RequestLog,
    ResponseLog,
    RetryPolicy,
    Usage,
)
from agentrail.gateway.request_logger import JsonRequestLogger, RequestLogger
from agentrail.gateway.retry import with_retry

DEFAULT_MODEL_PROVIDER_MAP: dict[str, ProviderName] = {
    "gemini-2.5-flash": ProviderName.GOOGLE,
    "gemini-2.0-flash": ProviderName.GOOGLE,
    "gemini-1.5-flash": ProviderName.GOOGLE,
    "glm-4.7": ProviderName.GLM,
    "glm-4-flash": ProviderName.GLM,
    "glm-4": ProviderName.GLM,
    "glm-4-plus": ProviderName.GLM,
    "glm-4-air": ProviderName.GLM,
    "glm-4-long": ProviderName.GLM,
    "deepseek-chat": ProviderName.DEEPSEEK,
    "deepseek-reasoner": ProviderName.DEEPSEEK,
}

# LiteLLM route prefix per provider
_LITELLM_ROUTES: dict[ProviderName, str] = {
    ProviderName.GOOGLE: "gemini",
    ProviderName.GLM: "openai",
    ProviderName.DEEPSEEK: "deepseek",
}


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ModelGateway:
    """
    Multi-provider chat with retry, fallback and cost estimation.

    Args:
        settings: Routing, timeout and retry configuration
        providers: Per-provider credentials, endpoints and default models
        cost_table: Per-model prices (defaults to ``default_cost_table()``)
        retry_policy: Overrides the retry knobs in ``settings``
        model_provider_map: Extra model → provider entries, merged over the defaults
        request_logger: Event sink (defaults to JSON lines on the gateway logger)
    """

    def __init__(
        self,
        settings: GatewaySettings,
        providers: ProviderSettings,
        cost_table: CostTable | None = None,
        retry_policy: RetryPolicy | None = None,
        model_provider_map: dict[str, ProviderName] | None = None,
        request_logger: RequestLogger | None = None,
    ):
        self._settings = settings
        self._providers = providers
        self._cost_table = cost_table if cost_table is not None else default_cost_table()
        self._retry_policy = retry_policy or RetryPolicy(
            max_retries=settings.max_retries,
            backoff_seconds=settings.backoff_seconds,
            max_backoff_seconds=settings.max_backoff_seconds,
            jitter=settings.jitter,
        )
        self._model_provider_map: dict[str, ProviderName] = {
            **DEFAULT_MODEL_PROVIDER_MAP,
            **{model: ProviderName(p) for model, p in providers.model_provider_map().items()},
            **(model_provider_map or {}),
        }
        self._request_logger = request_logger or JsonRequestLogger()

    @property
    def default_model(self) -> str | None:
        """Explicitly configured model, else the first configured provider's model."""
        if self._settings.default_model and self._settings.default_model.strip():
            return self._settings.default_model.strip()
        configured = self._providers.fallback_models()
        return configured[0] if configured else None

    def fallback_models(self, primary: str) -> list[str]:
        """Models tried after ``primary``, without repeating it."""
        if self._settings.fallback_models is not None:
            candidates = self._settings.fallback_models
        else:
            candidates = self._providers.fallback_models()
        return [m for m in candidates if m != primary]

    def _resolve_timeout(self, request: ChatRequest) -> float | None:
        timeouts = [t for t in (request.timeout_seconds, self._settings.timeout_seconds) if t]
        return min(timeouts) if timeouts else None

    def _resolve_provider(self, model: str, explicit: ProviderName | None) -> ProviderName:
        if explicit is not None:
            provider = explicit
        else:
            provider = self._model_provider_map.get(model)
            if provider is None:
                raise GatewayError(f"No provider mapping found for model: {model}")

        if not self._providers.api_key_for(provider.value):
            raise GatewayError(f"Provider not configured: {provider.value}")
        return provider

    async def _complete(
        self,
        model: str,
        provider: ProviderName,
        request: ChatRequest,
        request_id: str,
    ) -> ChatResult:
        """One provider attempt via LiteLLM, mapped to a uniform ChatResult."""
        call_kwargs: dict[str, Any] = {
            "model": f"{_LITELLM_ROUTES[provider]}/{model}",
            "messages": [m.model_dump() for m in request.messages],
            "api_key": self._providers.api_key_for(provider.value),
        }
        if request.temperature is not None:
            call_kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            call_kwargs["max_tokens"] = request.max_tokens
        endpoint = self._providers.endpoint_for(provider.value)
        if endpoint:
            call_kwargs["api_base"] = endpoint

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            status = getattr(e, "status_code", None)
            code = getattr(e, "code", None)
            raise ProviderError(
                f"{provider.value} call failed: {e}",
                provider=provider,
                status=status if isinstance(status, int) else None,
                code=code if isinstance(code, str) else None,
                cause=e,
            ) from e

        choice = response.choices[0]
        usage = None
        if getattr(response, "usage", None) is not None:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return ChatResult(
            content=choice.message.content or "",
            usage=usage,
            finish_reason=choice.finish_reason,
            raw=response,
        )

    async def chat(self, request: ChatRequest) -> ChatResult:
        """
        Send a chat request, falling back across models on failure.

        Raises:
            GatewayError: If no model can be resolved, a model has no provider
                mapping, or the provider has no credentials
            Exception: The last provider/network error when every candidate fails
        """
        model = request.model or self.default_model
        if not model:
            raise GatewayError(
                "Model is required. Set request.model, GATEWAY_DEFAULT_MODEL, "
                "or configure a provider API key."
            )

        candidates = [model, *self.fallback_models(model)]
        timeout = self._resolve_timeout(request)
        request_id = request.request_id or str(uuid.uuid4())
        last_error: Exception | None = None

        for candidate in candidates:
            provider = self._resolve_provider(candidate, request.provider)
            attempt_start = time.monotonic()

            self._request_logger.log_request(
                RequestLog(
                    timestamp=_now_iso(),
                    request_id=request_id,
                    model=candidate,
                    provider=provider,
                    message_count=len(request.messages),
                    timeout_seconds=timeout,
                )
            )

            async def attempt(candidate: str = candidate, provider: ProviderName = provider) -> ChatResult:
                return await asyncio.wait_for(
                    self._complete(candidate, provider, request, request_id),
                    timeout=timeout,
                )

            try:
                result = await with_retry(attempt, self._retry_policy)
            except Exception as e:
                last_error = e
                self._request_logger.log_error(
                    ErrorLog(
                        timestamp=_now_iso(),
                        request_id=request_id,
                        model=candidate,
                        provider=provider,
                        duration_ms=int((time.monotonic() - attempt_start) * 1000),
                        error=ErrorDetails(
                            name=type(e).__name__,
                            message=str(e) or "Unknown error",
                            status=getattr(e, "status", None),
                            code=getattr(e, "code", None),
                        ),
                    )
                )
                continue

            cost = estimate_cost(result.usage, candidate, self._cost_table)
            self._request_logger.log_response(
                ResponseLog(
                    timestamp=_now_iso(),
                    request_id=request_id,
                    model=candidate,
                    provider=provider,
                    duration_ms=int((time.monotonic() - attempt_start) * 1000),
                    usage=result.usage,
                    finish_reason=result.finish_reason,
                    cost=cost,
                )
            )
            return result.model_copy(
                update={
                    "cost": cost,
                    "model": candidate,
                    "provider": provider,
                    "request_id": request_id,
                }
            )

        raise last_error or GatewayError("Model gateway failed without an explicit error.")
