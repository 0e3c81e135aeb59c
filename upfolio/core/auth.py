"""Caller authentication and acting-user resolution.

Two layers:
- ``X-API-Key`` identifies the trusted upstream (the web front end that owns
  the user session). Keys come from a comma-separated environment variable.
- ``X-User-Id`` carries the acting user established by that session. It is
  parsed once here and passed explicitly into the policy services.
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Header, HTTPException, status

from upfolio.core.config import settings
from upfolio.core.errors import AuthenticationAppError
from upfolio.core.logging import hash_identifier, set_user_id

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Split ``APP_API_KEYS`` into a set of non-empty, trimmed keys.

    >>> sorted(parse_api_keys("key1, key2 , key3 "))
    ['key1', 'key2', 'key3']
    """
    return {key.strip() for key in (keys_string or "").split(",") if key.strip()}


def _matches_any(provided: str, keys: set[str]) -> bool:
    # Constant time over the whole key set
    matched = False
    for key in keys:
        matched |= secrets.compare_digest(provided.encode(), key.encode())
    return matched


def validate_api_key(provided_key: str) -> None:
    """Check ``provided_key`` against the configured upstream keys.

    Raises:
        AuthenticationAppError: ``api_keys_not_configured`` when auth is on but
            no keys are set, ``invalid_api_key`` when the key is unknown.
    """
    if not settings.app.api_key_required:
        return

    configured = parse_api_keys(settings.app.api_keys)
    if not configured:
        logger.error("auth.api_keys_not_configured")
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no keys are configured.",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not _matches_any(provided_key, configured):
        logger.warning("auth.invalid_api_key", extra={"api_key_hash": hash_identifier(provided_key)})
        raise AuthenticationAppError(code="invalid_api_key", message="Invalid or missing API key")


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """Router-level dependency guarding every private route with a 403."""
    if not settings.app.api_key_required:
        return

    if not x_api_key:
        logger.warning("auth.missing_api_key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from exc


def parse_user_id(raw: str | None) -> int | None:
    """Parse an ``X-User-Id`` value; None when absent.

    Raises:
        AuthenticationAppError: If the value is not a positive integer.
    """
    if raw is None or raw == "":
        return None
    if not (raw.isascii() and raw.isdigit()) or int(raw) < 1:
        raise AuthenticationAppError(
            code="invalid_user_id",
            message="X-User-Id must be a positive integer.",
        )
    return int(raw)


async def get_acting_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> int:
    """Dependency returning the authenticated acting user.

    Raises:
        AuthenticationAppError: 401 when no user session is attached.
    """
    user_id = parse_user_id(x_user_id)
    if user_id is None:
        raise AuthenticationAppError(
            code="not_authenticated",
            message="Not authenticated.",
        )
    set_user_id(user_id)
    return user_id


async def get_optional_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> int | None:
    """Dependency for public reads that behave differently for owners."""
    user_id = parse_user_id(x_user_id)
    if user_id is not None:
        set_user_id(user_id)
    return user_id
