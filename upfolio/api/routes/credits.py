from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from upfolio.api.deps import ActingUserId, get_credit_ledger
from upfolio.core.auth import verify_api_key
from upfolio.schemas.credits import CreditBalanceRead, CreditPricesRead
from upfolio.services.credit_service import CreditLedger

router = APIRouter(
    prefix="/credits",
    tags=["Credits"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/balance", response_model=CreditBalanceRead)
def read_balance(
    user_id: ActingUserId,
    ledger: Annotated[CreditLedger, Depends(get_credit_ledger)],
) -> CreditBalanceRead:
    balance = ledger.balance_of(user_id)
    return CreditBalanceRead(balance=balance.balance, used=balance.used)


@router.get("/prices", response_model=CreditPricesRead)
def read_prices(ledger: Annotated[CreditLedger, Depends(get_credit_ledger)]) -> CreditPricesRead:
    """Cost of each metered feature, for display next to the buttons."""
    return CreditPricesRead(prices={feature.value: cost for feature, cost in ledger.prices.items()})
