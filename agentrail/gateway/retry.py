"""
Retry with exponential backoff and jitter.

This module only wraps a single attempt in a policy; timeouts and
cancellation are the caller's concern (the gateway runs each attempt
under ``asyncio.wait_for``).
"""

from __future__ import annotations

import asyncio
import logging
import random
import socket
from collections.abc import Awaitable, Callable
from typing import TypeVar

from agentrail.gateway.models import ProviderError, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_POLICY = RetryPolicy()


def is_retryable_error(error: BaseException) -> bool:
    """
    Classify an error as transient (worth retrying) or fatal.

    Retryable: rate limiting (429), request timeout (408) and server errors
    (5xx) from a provider, attempt timeouts, and connection-level network
    failures (reset, refused, DNS lookup failures).
    """
    if isinstance(error, ProviderError):
        status = error.status or 0
        return status in (408, 429) or status >= 500

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return True

    return isinstance(error, (ConnectionError, socket.gaierror))


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay before retry number ``attempt`` (1-based), capped and jittered."""
    raw = policy.backoff_seconds * (2 ** (attempt - 1))
    capped = min(raw, policy.max_backoff_seconds) if policy.max_backoff_seconds is not None else raw
    if policy.jitter:
        capped += random.uniform(-1, 1) * capped * policy.jitter
    return max(0.0, capped)


async def with_retry(
    attempt: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
) -> T:
    """
    Run ``attempt`` until it succeeds, retrying transient failures.

    Args:
        attempt: Zero-argument coroutine factory; called once per try
        policy: Retry policy (defaults to 2 retries, 0.3s base, 2s cap, 20% jitter)

    Returns:
        Whatever ``attempt`` returns on its first successful try

    Raises:
        The last error, once retries are exhausted or a fatal error occurs
    """
    policy = policy or DEFAULT_RETRY_POLICY
    failures = 0

    while True:
        try:
            return await attempt()
        except Exception as e:
            failures += 1
            if failures > policy.max_retries or not is_retryable_error(e):
                raise

            delay = backoff_delay(failures, policy)
            logger.debug(f"Retryable error ({e!r}); retry {failures}/{policy.max_retries} in {delay:.2f}s")
            await asyncio.sleep(delay)
