"""Rate limiting policies and FastAPI wiring.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``rate_limited("<policy>")`` only.
- Swap-friendly: the entry store sits behind an abstract interface.
- One store for all named policies; keys are namespaced by policy name.
- A background sweep bounds memory independently of request traffic.

Identifier strategy:
- Known acting user -> ``user:<id>`` (identity beats address spoofing).
- Otherwise the client address -> ``ip:<address>``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from datetime import datetime, timezone
from typing import Annotated, Awaitable, Callable

from fastapi import Header, Request

from upfolio.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitResult
from upfolio.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemoryRateLimitStore,
)
from upfolio.core.auth import parse_user_id
from upfolio.core.config import RateLimitPolicy, RateLimitSettings, settings
from upfolio.core.errors import RateLimitedAppError
from upfolio.core.logging import hash_identifier

logger = logging.getLogger(__name__)


DEFAULT_POLICIES: dict[str, RateLimitPolicy] = {
    "password_reset": RateLimitPolicy(requests=3, window_seconds=15 * 60),
    "password_reset_verify": RateLimitPolicy(requests=5, window_seconds=10 * 60),
    "email_verification_send": RateLimitPolicy(requests=1, window_seconds=30),
    "email_verification_verify": RateLimitPolicy(requests=5, window_seconds=10 * 60),
    "account_deletion": RateLimitPolicy(requests=3, window_seconds=60 * 60),
    "login": RateLimitPolicy(requests=5, window_seconds=15 * 60),
    "registration": RateLimitPolicy(requests=3, window_seconds=60 * 60),
    "password_change": RateLimitPolicy(requests=5, window_seconds=60 * 60),
}

_HUMAN_MESSAGES: dict[str, str] = {
    "account_deletion": "Too many deletion attempts.",
    "registration": "Too many registration attempts.",
    "login": "Too many login attempts.",
}


class RateLimiterRegistry:
    """Named fixed-window limiters sharing a single entry store."""

    def __init__(
        self,
        policies: dict[str, RateLimitPolicy],
        *,
        store: AbstractRateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._limiters = {
            name: InMemoryFixedWindowRateLimiter(
                limit=policy.requests,
                window_seconds=policy.window_seconds,
                store=self._store,
                namespace=name,
                clock=clock,
            )
            for name, policy in policies.items()
        }

    @classmethod
    def from_settings(cls, rate_limit_settings: RateLimitSettings) -> "RateLimiterRegistry":
        return cls({**DEFAULT_POLICIES, **rate_limit_settings.policies})

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def get(self, policy_name: str) -> InMemoryFixedWindowRateLimiter:
        try:
            return self._limiters[policy_name]
        except KeyError:
            raise KeyError(f"Unknown rate limit policy: {policy_name!r}") from None

    def check(self, policy_name: str, identifier: str) -> RateLimitResult:
        return self.get(policy_name).check(identifier)

    def reset(self, policy_name: str, identifier: str) -> None:
        self.get(policy_name).reset(identifier)

    def sweep_expired(self) -> int:
        removed = self._store.sweep(self._clock())
        if removed:
            logger.debug("rate_limit.swept", extra={"removed": removed})
        return removed


class RateLimitSweeper:
    """Periodically removes expired windows from a registry's store."""

    def __init__(self, registry: RateLimiterRegistry, interval_seconds: float) -> None:
        self._registry = registry
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self._registry.sweep_expired()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None


_registry: RateLimiterRegistry | None = None


def get_rate_limiter_registry() -> RateLimiterRegistry:
    """Return the process-wide registry, building it on first use."""

    global _registry
    if _registry is None:
        _registry = RateLimiterRegistry.from_settings(settings.rate_limit)
    return _registry


def set_rate_limiter_registry(registry: RateLimiterRegistry | None) -> None:
    """Replace the process-wide registry (test isolation, custom stores)."""

    global _registry
    _registry = registry


def client_identifier(request: Request, user_id: int | None = None) -> str:
    """Derive the limiter identifier for a request.

    Args:
        request: Incoming request.
        user_id: Acting user, when the caller is authenticated.

    Returns:
        ``user:<id>`` when a user is known, else ``ip:<address>``.
    """

    if user_id is not None:
        return f"user:{user_id}"

    forwarded = request.headers.get("x-forwarded-for")
    ip = (
        (forwarded.split(",")[0].strip() if forwarded else None)
        or request.headers.get("x-real-ip")
        or request.headers.get("cf-connecting-ip")
        or (request.client.host if request.client else None)
        or "unknown"
    )
    return f"ip:{ip}"


def format_retry_time(reset_at: int) -> str:
    """Render a reset timestamp as a short UTC clock time."""

    return datetime.fromtimestamp(reset_at, tz=timezone.utc).strftime("%H:%M:%S UTC")


def enforce(policy_name: str, identifier: str) -> RateLimitResult:
    """Check ``identifier`` against a policy and raise when throttled.

    Raises:
        RateLimitedAppError: 429 with retry metadata when the budget is spent.
    """

    registry = get_rate_limiter_registry()
    result = registry.check(policy_name, identifier)
    key_type = identifier.split(":", 1)[0]
    key_hash = hash_identifier(identifier)

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "policy": policy_name,
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy_name,
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "reset_at": result.reset_at,
            "retry_after_s": retry_after,
        },
    )

    prefix = _HUMAN_MESSAGES.get(policy_name, "Too many requests.")
    raise RateLimitedAppError(
        code="rate_limited",
        message=f"{prefix} Please try again after {format_retry_time(result.reset_at)}.",
        details={"limit": result.limit, "reset_at": result.reset_at, "retry_after": retry_after},
        limit=result.limit,
        reset_at=result.reset_at,
        retry_after_seconds=retry_after,
    )


RATE_LIMIT_KEYS = ("user", "ip")


def rate_limited(policy_name: str, *, by: str = "user") -> Callable[..., Awaitable[None]]:
    """Build a FastAPI dependency enforcing ``policy_name``.

    ``by="user"`` keys on the acting user (``X-User-Id``) when one is sent and
    on the client address otherwise. ``by="ip"`` always keys on the address;
    use it on routes that run before any identity exists, such as registration.

    Usage:
        @router.delete("/me", dependencies=[Depends(rate_limited("account_deletion"))])
    """

    if policy_name not in DEFAULT_POLICIES and policy_name not in settings.rate_limit.policies:
        raise KeyError(f"Unknown rate limit policy: {policy_name!r}")
    if by not in RATE_LIMIT_KEYS:
        raise ValueError(f"by must be one of {RATE_LIMIT_KEYS}, got {by!r}")

    async def dependency(
        request: Request,
        x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
    ) -> None:
        if not settings.rate_limit.enabled:
            return

        user_id = parse_user_id(x_user_id) if by == "user" else None
        enforce(policy_name, client_identifier(request, user_id))

    return dependency
