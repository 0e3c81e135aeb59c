"""Credit ledger policy for metered AI features.

Debits are a single conditional UPDATE
(``... SET credit_balance = credit_balance - :cost WHERE id = :id AND
credit_balance >= :cost``) so concurrent requests from one user cannot both
spend the same credits, and the balance can never go negative.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from upfolio.core.config import CreditSettings, settings
from upfolio.core.errors import InsufficientCreditsAppError, NotFoundAppError, ValidationAppError
from upfolio.models import Account

logger = logging.getLogger(__name__)


class FeatureKind(str, enum.Enum):
    JOB_FIT_ANALYSIS = "job_fit_analysis"
    COVER_LETTER = "cover_letter"
    TAILORED_RESUME = "tailored_resume"


def build_price_table(credit_settings: CreditSettings) -> dict[FeatureKind, int]:
    return {
        FeatureKind.JOB_FIT_ANALYSIS: credit_settings.job_fit_analysis_cost,
        FeatureKind.COVER_LETTER: credit_settings.cover_letter_cost,
        FeatureKind.TAILORED_RESUME: credit_settings.tailored_resume_cost,
    }


@dataclass(frozen=True)
class CreditBalance:
    balance: int
    used: int


@dataclass(frozen=True)
class DebitResult:
    """Outcome of ``try_debit``.

    ``allowed=False`` is a normal outcome, not an error: the balance is left
    untouched and the caller must not run the metered action.
    """

    allowed: bool
    cost: int
    balance: int
    used: int


class CreditLedger:
    """Reads and mutates per-account credit balances."""

    def __init__(self, db: Session, prices: dict[FeatureKind, int] | None = None) -> None:
        self.db = db
        self.prices = prices if prices is not None else build_price_table(settings.credits)

    def price_of(self, *features: FeatureKind) -> int:
        """Total cost of running ``features`` once each."""
        if not features:
            raise ValidationAppError(
                code="no_features_requested",
                message="At least one metered feature must be requested.",
            )
        return sum(self.prices[FeatureKind(feature)] for feature in features)

    def balance_of(self, user_id: int) -> CreditBalance:
        row = self.db.execute(
            select(Account.credit_balance, Account.credits_used).where(Account.id == user_id)
        ).one_or_none()
        if row is None:
            raise NotFoundAppError(code="account_not_found", message="Account not found.")
        return CreditBalance(balance=row.credit_balance, used=row.credits_used)

    def _apply(self, user_id: int, delta_balance: int, delta_used: int, *, min_balance: int = 0) -> bool:
        """Apply a delta atomically; False when the guard rejected it."""
        stmt = (
            update(Account)
            .where(Account.id == user_id)
            .values(
                credit_balance=Account.credit_balance + delta_balance,
                credits_used=Account.credits_used + delta_used,
            )
            .execution_options(synchronize_session=False)
        )
        if min_balance:
            stmt = stmt.where(Account.credit_balance >= min_balance)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                return False
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def try_debit(self, user_id: int, *features: FeatureKind) -> DebitResult:
        """Charge ``features`` to ``user_id`` if the balance covers them.

        Raises:
            NotFoundAppError: If the account does not exist.
        """
        cost = self.price_of(*features)
        applied = self._apply(user_id, -cost, cost, min_balance=cost)
        current = self.balance_of(user_id)
        feature_names = [FeatureKind(f).value for f in features]

        if not applied:
            logger.info(
                "credits.debit_rejected",
                extra={"features": feature_names, "cost": cost, "balance": current.balance},
            )
            return DebitResult(allowed=False, cost=cost, balance=current.balance, used=current.used)

        logger.info(
            "credits.debited",
            extra={"features": feature_names, "cost": cost, "balance": current.balance},
        )
        return DebitResult(allowed=True, cost=cost, balance=current.balance, used=current.used)

    def require_debit(self, user_id: int, *features: FeatureKind) -> DebitResult:
        """``try_debit`` that raises the user-facing error on refusal.

        Raises:
            InsufficientCreditsAppError: With required and available amounts.
        """
        result = self.try_debit(user_id, *features)
        if not result.allowed:
            raise InsufficientCreditsAppError(
                code="insufficient_credits",
                message=(
                    f"Insufficient credits. You need {result.cost} credits "
                    f"but only have {result.balance}."
                ),
                details={"required": result.cost, "available": result.balance},
            )
        return result

    def refund(self, user_id: int, *features: FeatureKind) -> CreditBalance:
        """Reverse a debit whose metered action failed before producing output."""
        cost = self.price_of(*features)
        if not self._apply(user_id, cost, -cost):
            raise NotFoundAppError(code="account_not_found", message="Account not found.")
        balance = self.balance_of(user_id)
        logger.warning(
            "credits.refunded",
            extra={"features": [FeatureKind(f).value for f in features], "cost": cost, "balance": balance.balance},
        )
        return balance

    def grant(self, user_id: int, amount: int) -> CreditBalance:
        """Administrative top-up. Not reachable from end-user routes."""
        if amount <= 0:
            raise ValidationAppError(
                code="invalid_grant_amount",
                message="Grant amount must be a positive integer.",
                details={"field": "amount"},
            )
        if not self._apply(user_id, amount, 0):
            raise NotFoundAppError(code="account_not_found", message="Account not found.")
        balance = self.balance_of(user_id)
        logger.info("credits.granted", extra={"amount": amount, "balance": balance.balance})
        return balance
