"""Visibility read policy for public portfolio pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from upfolio.core.errors import NotFoundAppError
from upfolio.models import Account, ResumeVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Portfolio:
    account: Account
    version: ResumeVersion
    is_owner_preview: bool


def _portfolio_not_found(username: str) -> NotFoundAppError:
    # Same error for unknown, private and unpublished so responses never
    # reveal whether an account exists.
    return NotFoundAppError(
        code="portfolio_not_found",
        message="Portfolio not found.",
        details={"username": username},
    )


def get_portfolio(db: Session, username: str, viewer_user_id: int | None = None) -> Portfolio:
    """Resolve the portfolio shown for ``username``.

    Owners always see their published version (preview of a private
    account); everyone else only sees it when the account is public.

    Raises:
        NotFoundAppError: For unknown users, private accounts viewed by
            others, and accounts without a published version alike.
    """

    account = db.execute(
        select(Account).where(func.lower(Account.username) == username.lower())
    ).scalar_one_or_none()
    if account is None:
        raise _portfolio_not_found(username)

    is_owner = viewer_user_id is not None and viewer_user_id == account.id
    if not is_owner and not account.is_public:
        logger.info("portfolio.hidden", extra={"reason": "private"})
        raise _portfolio_not_found(username)

    version = db.execute(
        select(ResumeVersion).where(
            ResumeVersion.user_id == account.id,
            ResumeVersion.is_published.is_(True),
        )
    ).scalar_one_or_none()
    if version is None:
        raise _portfolio_not_found(username)

    return Portfolio(account=account, version=version, is_owner_preview=is_owner)
