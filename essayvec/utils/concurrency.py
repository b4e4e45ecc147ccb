"""Concurrency primitives for the ingestion pipeline.

Two tools live here:

1. **DispatchLimiter** -- combined concurrency cap and leaky-bucket pacing
   for calls to a rate-limited service.  A call may start only when a slot
   is free *and* at least ``min_interval`` seconds have passed since the
   previous call started.  State is ``{free slots, last dispatch time}``;
   :meth:`DispatchLimiter.acquire` and :meth:`DispatchLimiter.release` are
   the only places it changes.

2. **throttled_gather** -- ``asyncio.gather`` with each awaitable wrapped in
   a semaphore, used to fan out independent article fetches.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import structlog

from essayvec.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


class DispatchLimiter:
    """Admit at most ``max_concurrent`` calls, spaced ``min_interval`` apart.

    Dispatch decisions are serialized behind an :class:`asyncio.Lock`, so two
    waiters can never both pass the pacing check for the same instant.  The
    interval is measured from the *start* of the most recent dispatch, not
    its completion.

    Parameters
    ----------
    max_concurrent:
        Maximum number of calls in flight at once.
    min_interval:
        Minimum seconds between two consecutive dispatch starts.
    clock:
        Monotonic time source.  Tests inject a fake clock.
    sleep:
        Coroutine used to wait out the pacing interval.  Tests inject a
        sleep that advances the fake clock.
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        min_interval: float = 0.5,
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._max_concurrent = max_concurrent
        self._min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._slots = asyncio.Semaphore(max_concurrent)
        self._dispatch_lock = asyncio.Lock()
        self._in_flight = 0
        self._last_dispatch: float | None = None

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def acquire(self) -> float:
        """Wait for a free slot and the pacing interval, then claim a dispatch.

        Returns the clock reading recorded as this dispatch's start time.
        Every successful ``acquire`` must be paired with one :meth:`release`.
        """
        await self._slots.acquire()
        try:
            async with self._dispatch_lock:
                now = self._clock()
                if self._last_dispatch is not None:
                    # Timers may fire early; re-check until the full interval has passed.
                    wait = self._last_dispatch + self._min_interval - now
                    while wait > 0:
                        await self._sleep(wait)
                        now = self._clock()
                        wait = self._last_dispatch + self._min_interval - now
                self._last_dispatch = now
                self._in_flight += 1
                return now
        except BaseException:
            self._slots.release()
            raise

    def release(self) -> None:
        """Return a slot claimed by :meth:`acquire`."""
        if self._in_flight <= 0:
            raise RuntimeError("DispatchLimiter.release() called without a matching acquire()")
        self._in_flight -= 1
        self._slots.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[float]:
        """``async with limiter.slot():`` -- acquire, run the body, release."""
        started = await self.acquire()
        try:
            yield started
        finally:
            self.release()


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` permits at a time.

    Results come back in input order, mirroring ``asyncio.gather``.  With
    ``return_exceptions=False`` the first failure cancels the remaining
    awaitables before it propagates.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(_wrapped(c)) for c in coros]
    try:
        return await asyncio.gather(*tasks, return_exceptions=return_exceptions)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
