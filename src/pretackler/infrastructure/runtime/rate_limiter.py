"""Shared request-rate and byte-rate throttle for completion workers."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

_EPOCH_SECONDS = 1.0

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Dual-gate throttle: minimum request spacing plus a per-second byte budget.

    Either gate may be disabled by passing `None`. State is mutated only while
    holding `_lock`, and the lock is released before any sleep so waiting
    workers never serialize unrelated network I/O.
    """

    def __init__(
        self,
        requests_per_second: float | None = None,
        bytes_per_second: int | None = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if requests_per_second is not None and requests_per_second <= 0:
            raise ValueError("requests_per_second must be > 0 when set.")
        if bytes_per_second is not None and bytes_per_second <= 0:
            raise ValueError("bytes_per_second must be > 0 when set.")
        self._request_interval = (
            None if requests_per_second is None else 1.0 / requests_per_second
        )
        self._bytes_per_second = bytes_per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._next_request_at: float | None = None
        self._epoch_start: float | None = None
        self._bytes_in_epoch = 0

    @property
    def requests_per_second(self) -> float | None:
        if self._request_interval is None:
            return None
        return 1.0 / self._request_interval

    @property
    def bytes_per_second(self) -> int | None:
        return self._bytes_per_second

    async def acquire_request_slot(self) -> None:
        """Wait until this caller may issue its next request."""

        if self._request_interval is None:
            return

        async with self._lock:
            now = self._clock()
            granted_at = now
            if self._next_request_at is not None:
                granted_at = max(now, self._next_request_at)
            self._next_request_at = granted_at + self._request_interval

        wait = granted_at - now
        if wait > 0:
            logger.debug("Request rate limit: waiting %.3fs for a slot.", wait)
            await self._sleep(wait)

    async def acquire_bytes(self, size: int) -> None:
        """Wait until `size` bytes fit into the current one-second epoch.

        A request larger than the whole budget is granted alone into an empty
        epoch so it cannot block forever.
        """

        budget = self._bytes_per_second
        if budget is None or size <= 0:
            return

        while True:
            async with self._lock:
                now = self._clock()
                if self._epoch_start is None or now - self._epoch_start >= _EPOCH_SECONDS:
                    self._epoch_start = now
                    self._bytes_in_epoch = 0
                if self._bytes_in_epoch == 0 or self._bytes_in_epoch + size <= budget:
                    self._bytes_in_epoch += size
                    return
                wait = self._epoch_start + _EPOCH_SECONDS - now

            logger.debug(
                "Byte rate limit: %s bytes exceed epoch budget, waiting %.3fs.",
                size,
                wait,
            )
            await self._sleep(max(wait, 0.0))


__all__ = ["RateLimiter"]
