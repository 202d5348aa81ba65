"""Per-user sliding window rate limiting.

Each admission expires individually exactly ``window_seconds`` after it was
recorded, so a user regains one slot at a time instead of getting a burst of
fresh slots at a fixed boundary.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from mentionbot.app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    retry_after: float = 0.0


class SlidingWindowLimiter:
    """In-memory sliding window limiter keyed by user identity.

    The whole prune-check-record sequence runs under one ``asyncio.Lock``
    guarding the key map, and nothing inside the critical section awaits, so
    concurrent callers for the same key can never both take the last slot.

    Idle keys are never evicted; each key's timestamps are pruned lazily on
    access, which bounds memory by distinct active users times ``limit``.
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            limit: Maximum admissions per key within one window
            window_seconds: Window length in seconds
            clock: Monotonic time source, injectable for tests
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()

    async def admit(self, key: str) -> RateLimitResult:
        """Admit or reject one request for ``key``.

        Returns:
            ``allowed=True`` with ``retry_after=0`` when a slot was taken,
            otherwise ``allowed=False`` with the seconds until the oldest
            admission in the window expires.
        """
        async with self._lock:
            now = self._clock()
            cutoff = now - self.window_seconds

            timestamps = self._requests.get(key)
            if timestamps is None:
                timestamps = deque()
                self._requests[key] = timestamps

            # Ascending by construction, so expired entries are at the left
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            if len(timestamps) >= self.limit:
                retry_after = timestamps[0] + self.window_seconds - now
                logger.debug(f"Rate limit reached for {key}, retry in {retry_after:.1f}s")
                return RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    retry_after=max(0.0, retry_after),
                )

            timestamps.append(now)
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - len(timestamps),
            )

    def tracked_keys(self) -> int:
        """Number of keys with recorded state."""
        return len(self._requests)
