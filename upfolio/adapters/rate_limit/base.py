"""Rate limiter interfaces.

The API depends on these abstractions (not the concrete implementation) so
the per-process store can be swapped for a shared one (e.g. Redis with an
atomic increment script) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Counter for one identifier in its current window.

    Attributes:
        count: Requests observed in the window (saturates at the limit).
        reset_at: UNIX epoch seconds at which the window expires.
    """

    count: int
    reset_at: float

    def is_expired(self, now: float) -> bool:
        return self.reset_at <= now


@dataclass(frozen=True)
class RateLimitResult:
    """Decision for one counted request.

    ``reset_at`` is the epoch second at which the window ends. When blocked,
    ``remaining`` is 0 and ``retry_after_seconds`` is at least 1; otherwise
    it is None.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimitStore(ABC):
    """Storage for rate limit entries keyed by namespaced identifier.

    Implementations must apply ``hit`` atomically per key: the fixed-window
    read-modify-write is a critical section.
    """

    @abstractmethod
    def hit(self, key: str, *, limit: int, window_seconds: int, now: float) -> tuple[bool, RateLimitEntry]:
        """Record one request for ``key`` and return (allowed, entry after the call)."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Remove entries whose window already elapsed; return how many were removed."""
        raise NotImplementedError


class AbstractRateLimiter(ABC):
    """A single policy applied to caller identifiers."""

    @abstractmethod
    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it may proceed."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str) -> None:
        """Forget any window state held for ``identifier``."""
        raise NotImplementedError
