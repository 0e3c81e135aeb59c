"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Expected policy
outcomes (not owner, not found, invalid transition, rate limited,
insufficient credits) are all ``AppError`` subclasses; anything else that
escapes a request is treated as an infrastructure fault.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent without forcing every
    error to fill every key.
    """

    hint: str
    field: str
    version_id: int
    username: str
    required: int
    available: int
    limit: int
    reset_at: int
    retry_after: int
    timeout_seconds: float
    max_pages: int
    actual_pages: int
    model: str
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
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the caller's credentials or identity are missing/invalid."""


class NotOwnerAppError(AppError):
    """Raised when the acting user does not own the target resource."""


class NotFoundAppError(AppError):
    """Raised when the target resource does not exist (or must look absent)."""


class InvalidTransitionAppError(AppError):
    """Raised when a resume version cannot move to the requested state."""


class InsufficientCreditsAppError(AppError):
    """Raised when a metered feature costs more than the remaining balance."""


@dataclass
class RateLimitedAppError(AppError):
    """Raised when a rate limit policy rejects the request.

    Carries the limiter metadata so handlers can emit Retry-After and
    X-RateLimit-* headers.
    """

    limit: int = 0
    reset_at: int = 0
    retry_after_seconds: int = 0


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail."""
