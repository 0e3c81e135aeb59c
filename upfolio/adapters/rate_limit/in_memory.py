"""In-memory fixed-window rate limiter.

Counts are per process (each worker enforces its own budget) and guarded
by a lock. Windows are anchored at the first request of an identifier
(``reset_at = now + window``), not aligned to the wall clock.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from upfolio.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
)


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed entry store guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            return self._entries.get(key)

    def hit(self, key: str, *, limit: int, window_seconds: int, now: float) -> tuple[bool, RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)

            if entry is None or entry.is_expired(now):
                entry = RateLimitEntry(count=1, reset_at=now + window_seconds)
                self._entries[key] = entry
                return True, entry

            if entry.count < limit:
                entry.count += 1
                return True, entry

            return False, entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self, now: float) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """One policy: ``limit`` requests per ``window_seconds`` per identifier.

    Several limiters may share one store; ``namespace`` keeps their keys
    apart so the same identifier is counted independently per policy.
    Counts live in this process only.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        store: AbstractRateLimitStore | None = None,
        namespace: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """``store`` defaults to a private one; ``clock`` returns epoch seconds.

        Raises:
            ValueError: If limit or window_seconds are below 1.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._namespace = namespace
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def _key(self, identifier: str) -> str:
        return f"{self._namespace}:{identifier}" if self._namespace else identifier

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request and decide whether it may proceed.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        now = self._clock()
        allowed, entry = self._store.hit(
            self._key(identifier),
            limit=self._limit,
            window_seconds=self._window_seconds,
            now=now,
        )
        reset_at = int(math.ceil(entry.reset_at))

        if allowed:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=max(0, self._limit - entry.count),
                reset_at=reset_at,
                retry_after_seconds=None,
            )

        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=max(1, int(math.ceil(entry.reset_at - now))),
        )

    def reset(self, identifier: str) -> None:
        self._store.delete(self._key(identifier))

    def sweep_expired(self) -> int:
        """Drop expired windows from the backing store."""
        return self._store.sweep(self._clock())
