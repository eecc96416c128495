"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-process counters can be replaced by a shared store (e.g., Redis)
when more than one instance serves traffic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named request quota.

    Attributes:
        name: Stable identifier, used to keep counters of different policies apart.
        limit: Max accepted requests per window.
        window_seconds: Window length in seconds.
        message: Plain-text body returned to clients that exceed the quota.
    """

    name: str
    limit: int
    window_seconds: int
    message: str

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the next unit of budget frees up.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, policy: RateLimitPolicy, *, cost: int = 1) -> RateLimitResult:
        """Check the quota for a key and consume budget when allowed.

        Args:
            key: Unique caller identifier (e.g., client IP).
            policy: Quota to evaluate.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
