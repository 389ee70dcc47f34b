"""Operation rate limiting for workload workers.

Sliding-window permit limiter: at most ``max_operations`` admissions in
any window of ``window_seconds``. Callers wait for a permit for at most
``wait_timeout`` seconds; when no permit frees up in time the attempt is
skipped rather than queued, so an over-limited worker keeps cycling
instead of building a backlog.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Sliding-window rate limiter with bounded wait.

    Safe to share between tasks on one event loop: the admission check
    and the timestamp append happen without an intervening await.
    """

    def __init__(
        self,
        max_operations: int,
        window_seconds: float = 1.0,
        wait_timeout: float = 0.002,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_operations < 1:
            raise ValueError(f"max_operations must be >= 1, got {max_operations}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        if wait_timeout < 0:
            raise ValueError(f"wait_timeout must be >= 0, got {wait_timeout}")

        self.max_operations = max_operations
        self.window_seconds = window_seconds
        self.wait_timeout = wait_timeout
        self._clock = clock
        self._sleep = sleep
        self._admitted: deque[float] = deque()

    def _prune(self, now: float) -> None:
        # Same expression as the free-at time computed in acquire()
        while self._admitted and self._admitted[0] + self.window_seconds <= now:
            self._admitted.popleft()

    def try_acquire(self) -> bool:
        """Take a permit if one is available right now."""
        now = self._clock()
        self._prune(now)
        if len(self._admitted) < self.max_operations:
            self._admitted.append(now)
            return True
        return False

    def in_window(self) -> int:
        """Admissions counted in the current window."""
        self._prune(self._clock())
        return len(self._admitted)

    async def acquire(self) -> bool:
        """Wait for a permit, at most ``wait_timeout`` seconds.

        Returns:
            True if a permit was taken, False if the wait timed out.
        """
        deadline = self._clock() + self.wait_timeout
        while True:
            if self.try_acquire():
                return True

            now = self._clock()
            # Next permit frees up when the oldest admission leaves the window
            free_at = self._admitted[0] + self.window_seconds
            remaining = deadline - now
            if free_at - now > remaining:
                # Waiting out the timeout keeps a throttled caller from spinning
                await self._sleep(max(0.0, remaining))
                return False

            await self._sleep(max(0.0, free_at - now))
