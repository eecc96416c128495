"""Rate limiting middleware.

This module wires the rate limiting adapter into the HTTP layer.

Two policies are enforced per client:
- daily: every request to every route counts against it.
- burst: only POST/PUT/DELETE requests under /machinedata count against it.

The daily check runs first; a request rejected there never reaches the burst
check, so it consumes no burst budget. Reads of /machinedata never touch the
burst counters.

Design goals:
- Minimal coupling: the limiter is an injected service on ``app.state``.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from fastapi import Request, Response

from machinedata_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)
from machinedata_api.core.config import AppSettings, settings
from machinedata_api.core.errors import RateLimitAppError
from machinedata_api.core.exception_handlers import rate_limit_error_response

logger = logging.getLogger(__name__)

MACHINE_DATA_PATH = "/machinedata"
MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE"})


@dataclass(frozen=True)
class RateLimitPolicies:
    """The policy pair applied by ``rate_limit_middleware``."""

    daily: RateLimitPolicy
    burst: RateLimitPolicy


def build_rate_limit_policies(app_settings: AppSettings | None = None) -> RateLimitPolicies:
    """Build the daily and burst policies from configuration."""

    cfg = app_settings or settings.app
    return RateLimitPolicies(
        daily=RateLimitPolicy(
            name="daily",
            limit=cfg.daily_limit_requests,
            window_seconds=cfg.daily_limit_window_seconds,
            message=cfg.daily_limit_message,
        ),
        burst=RateLimitPolicy(
            name="burst",
            limit=cfg.burst_limit_requests,
            window_seconds=cfg.burst_limit_window_seconds,
            message=cfg.burst_limit_message,
        ),
    )


def is_burst_limited(method: str, path: str) -> bool:
    """Whether a request counts against the burst policy."""

    if method.upper() not in MUTATING_METHODS:
        return False
    return path == MACHINE_DATA_PATH or path.startswith(MACHINE_DATA_PATH + "/")


def _build_rate_limit_key(request: Request) -> str:
    """Build the limiter key for the current request."""

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Standard quota headers describing a limiter decision."""

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


def _reject(policy: RateLimitPolicy, result: RateLimitResult, key: str) -> Response:
    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy.name,
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": policy.window_seconds,
            "retry_after_s": retry_after,
        },
    )
    exc = RateLimitAppError(
        code="rate_limit_exceeded",
        message=policy.message,
        details={"policy": policy.name, "retry_after": retry_after},
    )
    headers = build_rate_limit_headers(result) if settings.app.rate_limit_include_headers else None
    return rate_limit_error_response(exc, headers=headers)


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing the daily and burst policies.

    Reads the limiter from ``request.app.state.rate_limiter``; when it is None
    rate limiting is disabled. Accepted responses carry the X-RateLimit-*
    headers of the last policy evaluated.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response, or a 429 plain-text response
            carrying the policy message.
    """

    limiter: AbstractRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return await call_next(request)

    policies: RateLimitPolicies = request.app.state.rate_limit_policies
    key = _build_rate_limit_key(request)

    applicable = [policies.daily]
    if is_burst_limited(request.method, request.url.path):
        applicable.append(policies.burst)

    result: RateLimitResult | None = None
    for policy in applicable:
        result = limiter.consume(key, policy)
        if not result.allowed:
            return _reject(policy, result, key)
        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": policy.name,
                "key_hash": _hash_limiter_key(key),
                "remaining": result.remaining,
            },
        )

    response = await call_next(request)
    if result is not None and settings.app.rate_limit_include_headers:
        response.headers.update(build_rate_limit_headers(result))
    return response
