"""Bounded retry with exponential backoff for embedding calls.

The retry loop is iterative: attempt, classify the failure, sleep, try
again.  The backoff curve and the per-class ceilings live on
:class:`RetryPolicy` so they can be tested without any network I/O, and the
``sleep`` coroutine is injectable so tests never actually wait.

Failure classes:

* :class:`~essayvec.utils.errors.QuotaExhaustedError` -- never retried.
* :class:`~essayvec.utils.errors.RateLimitError` -- retried up to
  ``rate_limit_max_retries`` times.
* any other :class:`~essayvec.utils.errors.EmbeddingError` -- retried up to
  ``max_retries`` times.

Anything outside the :class:`EmbeddingError` family propagates immediately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

from essayvec.utils.errors import EmbeddingError, QuotaExhaustedError, RateLimitError
from essayvec.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff curve and retry ceilings.

    ``delay_for(n)`` is the wait before retry ``n + 1``:
    ``min(base_delay * multiplier ** n, max_delay)``.
    """

    max_retries: int = 3
    rate_limit_max_retries: int = 8
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 120.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)

    def ceiling_for(self, exc: BaseException) -> int:
        """Return how many retries *exc*'s failure class is allowed."""
        if isinstance(exc, QuotaExhaustedError):
            return 0
        if isinstance(exc, RateLimitError):
            return self.rate_limit_max_retries
        return self.max_retries


class RetriesExhausted(Exception):
    """Raised by :func:`retry_async` when a call keeps failing past its ceiling.

    ``last_error`` is the final failure; ``attempts`` counts every call made.
    """

    def __init__(self, last_error: EmbeddingError, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"gave up after {attempts} attempts: {last_error}")


async def retry_async(
    fn: Callable[[], Awaitable[_T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    description: str = "",
) -> tuple[_T, int]:
    """Call *fn* until it succeeds or its failure class runs out of retries.

    Returns ``(result, attempts)``.  Raises :class:`QuotaExhaustedError`
    untouched, and :class:`RetriesExhausted` once the ceiling is reached.
    """
    sleep = sleep or asyncio.sleep
    retries = 0
    while True:
        try:
            return await fn(), retries + 1
        except QuotaExhaustedError:
            raise
        except EmbeddingError as exc:
            ceiling = policy.ceiling_for(exc)
            if retries >= ceiling:
                _logger.warning(
                    "retry_ceiling_reached",
                    target=description,
                    attempts=retries + 1,
                    error=str(exc),
                )
                raise RetriesExhausted(exc, retries + 1) from exc
            delay = policy.delay_for(retries)
            retries += 1
            _logger.info(
                "retry_scheduled",
                target=description,
                retry=retries,
                ceiling=ceiling,
                delay_s=round(delay, 3),
                rate_limited=isinstance(exc, RateLimitError),
                error=str(exc),
            )
            await sleep(delay)
