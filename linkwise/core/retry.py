"""Retry utilities with exponential backoff and jitter for external calls.

Every failure is classified into the ServiceError taxonomy first; only codes
marked retryable are retried. Policies are tuned per consumer:

- LLM: patient, rate-limit friendly
- REDIRECT: brisk, at most two attempts per hop
- READER: remote extraction services
- METADATA: no retry, silent degradation is preferred over latency
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from linkwise.core.errors import ServiceError, wrap_error
from linkwise.core.metrics import retry_attempts_total

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-based), capped at max_delay."""
        delay = min(self.base_delay * (self.multiplier**attempt), self.max_delay)
        if self.jitter:
            # 0.5x to 1.5x to spread out retries from concurrent batch items
            delay *= 0.5 + random.random()
        return delay


class RetryPolicies:
    LLM = RetryPolicy(max_attempts=3, base_delay=2.0, max_delay=30.0)
    REDIRECT = RetryPolicy(max_attempts=2, base_delay=1.0, max_delay=5.0)
    READER = RetryPolicy(max_attempts=2, base_delay=1.0, max_delay=8.0)
    METADATA = RetryPolicy(max_attempts=1, base_delay=0.0, max_delay=0.0, multiplier=1.0, jitter=False)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    context: dict[str, Any],
    policy: RetryPolicy = RetryPolicy(),
) -> T:
    """Run ``operation`` and retry retryable failures with exponential backoff.

    Raises the classified ServiceError once the error is not retryable or
    attempts are exhausted. Callers at a public boundary are expected to
    catch it and degrade.

    Args:
        operation: Zero-argument coroutine factory, invoked once per attempt
        context: Log/error context (service, operation, url, ...)
        policy: Attempt budget and backoff shape

    Returns:
        Result of the first successful attempt
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            error = wrap_error(exc, context)
            attempt += 1

            if not error.retryable or attempt >= policy.max_attempts:
                logger.warning(
                    "retry.giving_up",
                    attempts=attempt,
                    max_attempts=policy.max_attempts,
                    error_code=error.code.value,
                    error=error.message,
                    **context,
                )
                if error is exc:
                    raise
                raise error from exc

            delay = policy.delay_for(attempt - 1)
            retry_attempts_total.labels(
                service=str(context.get("service", "unknown")),
                error_code=error.code.value,
            ).inc()
            logger.warning(
                "retry.attempt",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 3),
                error_code=error.code.value,
                error=error.message,
                **context,
            )
            await asyncio.sleep(delay)


async def with_retry_result(
    operation: Callable[[], Awaitable[T]],
    context: dict[str, Any],
    policy: RetryPolicy = RetryPolicy(),
) -> tuple[T | None, ServiceError | None]:
    """Like with_retry, but returns (value, None) or (None, error) instead of raising."""
    try:
        return await with_retry(operation, context, policy), None
    except ServiceError as error:
        return None, error
