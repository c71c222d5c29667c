"""Retry with exponential backoff for transient model-service failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import ModelServiceError

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Backoff budget: delay = min(cap, base * multiplier**attempt) + jitter."""

    name: str
    max_retries: int
    base_delay_ms: float
    multiplier: float
    max_delay_ms: float | None = None
    jitter_ms: float = 0.0

    def delay_ms(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        backoff = self.base_delay_ms * (self.multiplier**attempt)
        if self.max_delay_ms is not None:
            backoff = min(self.max_delay_ms, backoff)
        jitter = rng() * self.jitter_ms if self.jitter_ms > 0 else 0.0
        return backoff + jitter


# Conversational path: 3000 ms, 6000 ms.
BOUNDED_POLICY = RetryPolicy(
    name="bounded",
    max_retries=2,
    base_delay_ms=3000,
    multiplier=2.0,
)
# Weather-fetch path: capped at 30 s plus up to 1 s of jitter.
EXTENDED_POLICY = RetryPolicy(
    name="extended",
    max_retries=15,
    base_delay_ms=2000,
    multiplier=1.5,
    max_delay_ms=30000,
    jitter_ms=1000,
)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    logger: logging.Logger,
    context: str = "model call",
    sleep: Sleep = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Await ``operation``, retrying while it raises a retryable ModelServiceError.

    Once the budget is spent (or the error is not retryable) the original
    exception is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except ModelServiceError as exc:
            if not exc.retryable or attempt >= policy.max_retries:
                if exc.retryable:
                    logger.error(
                        "%s failed after %d retries (policy=%s status=%s)",
                        context,
                        attempt,
                        policy.name,
                        exc.status_code,
                    )
                raise
            delay_ms = policy.delay_ms(attempt, rng)
            logger.warning(
                "%s failed; retrying attempt=%d/%d status=%s delay_ms=%d policy=%s",
                context,
                attempt + 1,
                policy.max_retries,
                exc.status_code,
                int(delay_ms),
                policy.name,
            )
            await sleep(delay_ms / 1000.0)
            attempt += 1
