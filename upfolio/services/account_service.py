"""Account registration, visibility and deletion."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from upfolio.core.config import settings
from upfolio.core.errors import NotFoundAppError, ValidationAppError
from upfolio.models import Account

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, db: Session, starting_balance: int | None = None) -> None:
        self.db = db
        self.starting_balance = (
            starting_balance if starting_balance is not None else settings.credits.starting_balance
        )

    def get(self, user_id: int) -> Account:
        account = self.db.get(Account, user_id)
        if account is None:
            raise NotFoundAppError(code="account_not_found", message="Account not found.")
        return account

    def register(self, username: str, *, display_name: str | None = None, is_public: bool = False) -> Account:
        """Create an account holding the starting credit balance.

        Raises:
            ValidationAppError: If the username is already taken.
        """
        username = username.lower()
        taken = self.db.execute(
            select(Account.id).where(func.lower(Account.username) == username)
        ).first()
        if taken:
            raise ValidationAppError(
                code="username_taken",
                message="This username is already taken.",
                details={"field": "username"},
            )

        account = Account(
            username=username,
            display_name=display_name,
            is_public=is_public,
            credit_balance=self.starting_balance,
            credits_used=0,
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name
            self.db.rollback()
            raise ValidationAppError(
                code="username_taken",
                message="This username is already taken.",
                details={"field": "username"},
            ) from None

        self.db.refresh(account)
        logger.info("account.registered", extra={"user_id": account.id})
        return account

    def set_visibility(self, user_id: int, is_public: bool) -> Account:
        account = self.get(user_id)
        account.is_public = is_public
        self.db.commit()
        self.db.refresh(account)
        logger.info(
            "account.visibility_changed",
            extra={"is_public": is_public},
        )
        return account

    def delete(self, user_id: int) -> None:
        """Delete the account and, by cascade, its resume versions and saved applications."""
        account = self.get(user_id)
        version_count = len(account.resume_versions)
        self.db.delete(account)
        self.db.commit()
        logger.info("account.deleted", extra={"deleted_versions": version_count})
