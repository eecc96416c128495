"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Bounded: keys whose window has emptied are dropped on a periodic sweep.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from machinedata_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping a log of accepted request timestamps per key.

    A request is accepted only if fewer than ``policy.limit`` requests were
    accepted for the same key within the last ``policy.window_seconds``. Unlike
    a fixed window, this holds for every span of that length, including spans
    straddling a window boundary.

    Counters are kept separately per policy, so one limiter instance can serve
    several policies.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
            sweep_interval_seconds: How often idle keys are dropped.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._hits_by_key: dict[tuple[str, str], deque[float]] = {}
        self._windows: dict[str, int] = {}
        self._sweep_interval = sweep_interval_seconds
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        """Number of (policy, key) pairs currently tracked."""
        with self._lock:
            return len(self._hits_by_key)

    def _prune(self, hits: deque[float], now: float, window_seconds: int) -> None:
        """Drop timestamps that fell out of the window ending at ``now``."""
        horizon = now - window_seconds
        while hits and hits[0] <= horizon:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """Forget keys with no hit left in their window. Caller holds the lock."""
        if self._last_sweep is not None and now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        for state_key, hits in list(self._hits_by_key.items()):
            self._prune(hits, now, self._windows[state_key[0]])
            if not hits:
                del self._hits_by_key[state_key]

    def consume(self, key: str, policy: RateLimitPolicy, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key under a policy.

        Args:
            key: Unique identifier for rate limiting (e.g., client IP).
            policy: Quota to enforce.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            self._windows[policy.name] = policy.window_seconds
            self._sweep(now)

            state_key = (policy.name, key)
            hits = self._hits_by_key.get(state_key)
            if hits is None:
                hits = deque()
                self._hits_by_key[state_key] = hits
            self._prune(hits, now, policy.window_seconds)

            if len(hits) + cost <= policy.limit:
                hits.extend([now] * cost)
                reset_at = hits[0] + policy.window_seconds
                return RateLimitResult(
                    allowed=True,
                    limit=policy.limit,
                    remaining=max(0, policy.limit - len(hits)),
                    reset_at=int(math.ceil(reset_at)),
                    retry_after_seconds=None,
                )

            # Budget frees up once enough of the oldest hits leave the window.
            if hits:
                release_index = min(len(hits) - 1, len(hits) + cost - policy.limit - 1)
                reset_at = hits[release_index] + policy.window_seconds
            else:
                reset_at = now + policy.window_seconds
            return RateLimitResult(
                allowed=False,
                limit=policy.limit,
                remaining=max(0, policy.limit - len(hits)),
                reset_at=int(math.ceil(reset_at)),
                retry_after_seconds=max(0, int(math.ceil(reset_at - now))),
            )

