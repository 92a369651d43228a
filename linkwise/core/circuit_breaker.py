"""Circuit breakers for the remote enrichment tiers, using pybreaker.

State machine: CLOSED (healthy) → OPEN (failing) → HALF_OPEN (testing recovery).
State lives in process memory; each API worker and ARQ worker trips independently.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

from linkwise.core.config import settings
from linkwise.core.metrics import circuit_breaker_state_changes_total

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# api_name -> monotonic time the breaker last opened
_opened_at: dict[str, float] = {}


class LoggingCircuitBreakerListener(CircuitBreakerListener):
    """Logs state transitions and failures, and counts transitions in Prometheus."""

    def __init__(self, api_name: str):
        self.api_name = api_name

    def state_change(self, cb: CircuitBreaker, old_state: Any, new_state: Any) -> None:
        old_name = getattr(old_state, "name", str(old_state))
        new_name = getattr(new_state, "name", str(new_state))
        logger.info(
            "circuit_breaker.state_change",
            api_name=self.api_name,
            old_state=old_name,
            new_state=new_name,
        )
        circuit_breaker_state_changes_total.labels(
            api_name=self.api_name,
            from_state=old_name,
            to_state=new_name,
        ).inc()
        if new_name == "open":
            _opened_at[self.api_name] = time.monotonic()

    def failure(self, cb: CircuitBreaker, exc: BaseException) -> None:
        logger.warning(
            "circuit_breaker.failure",
            api_name=self.api_name,
            failure_count=cb.fail_counter,
            error=str(exc),
        )

    def success(self, cb: CircuitBreaker) -> None:
        if cb.current_state == "half-open":
            logger.info("circuit_breaker.recovery_success", api_name=self.api_name)


def create_circuit_breaker(api_name: str) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        reset_timeout=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
        name=api_name,
        listeners=[LoggingCircuitBreakerListener(api_name)],
    )


jina_breaker = create_circuit_breaker("jina")
firecrawl_breaker = create_circuit_breaker("firecrawl")


def _reraise(exc: BaseException) -> None:
    raise exc


async def call_with_circuit_breaker(
    breaker: CircuitBreaker,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T | None:
    """Await ``func`` under breaker protection.

    Returns None when the circuit is open or ``func`` raises. Outcomes are
    reported to pybreaker by routing a no-op (success) or a re-raise of the
    caught exception (failure) through ``breaker.call``; pybreaker's own async
    support is tied to Tornado.
    """
    if breaker.current_state == "open":
        opened = _opened_at.get(breaker.name, 0.0)
        if time.monotonic() - opened < breaker.reset_timeout:
            logger.warning("circuit_breaker.open", api_name=breaker.name)
            return None
        # Recovery window elapsed: let one trial call through
        breaker.half_open()

    try:
        result = await func(*args, **kwargs)
    except Exception as exc:
        try:
            breaker.call(_reraise, exc)
        except CircuitBreakerError:
            logger.warning("circuit_breaker.opened", api_name=breaker.name)
        except Exception:
            pass  # already counted by the breaker
        logger.warning(
            "circuit_breaker.function_error",
            api_name=breaker.name,
            error=str(exc),
        )
        return None

    try:
        breaker.call(lambda: None)
    except CircuitBreakerError:
        logger.warning("circuit_breaker.open_rejected", api_name=breaker.name)
    return result
