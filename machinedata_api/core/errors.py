"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional; only what is relevant to a given failure is set.
    """

    serial_number: str
    operation: str
    error_type: str
    fields: list[str]
    policy: str
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input is missing or malformed."""


class NotFoundAppError(AppError):
    """Raised when no machine matches the requested serial number."""


class ConflictAppError(AppError):
    """Raised when a machine with the same serial number already exists."""


class StoreAppError(AppError):
    """Raised when the document store is unreachable or an operation fails."""


class DuplicateMachineError(StoreAppError):
    """Raised by stores when an insert violates serial number uniqueness."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds one of the request quotas."""
