from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from upfolio.api.deps import ActingUserId, get_account_service
from upfolio.core.auth import verify_api_key
from upfolio.core.rate_limit import rate_limited
from upfolio.schemas.account import AccountCreate, AccountRead, VisibilityUpdate
from upfolio.services.account_service import AccountService

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"],
    dependencies=[Depends(verify_api_key)],
)

Accounts = Annotated[AccountService, Depends(get_account_service)]


@router.post(
    "",
    response_model=AccountRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("registration", by="ip"))],
)
def register_account(payload: AccountCreate, accounts: Accounts) -> AccountRead:
    """Create an account with the starting credit balance.

    Rate limited per client address (``registration`` policy).
    """
    account = accounts.register(
        payload.username,
        display_name=payload.display_name,
        is_public=payload.is_public,
    )
    return AccountRead.model_validate(account)


@router.get("/me", response_model=AccountRead)
def read_my_account(user_id: ActingUserId, accounts: Accounts) -> AccountRead:
    return AccountRead.model_validate(accounts.get(user_id))


@router.patch("/me/visibility", response_model=AccountRead)
def update_visibility(
    payload: VisibilityUpdate,
    user_id: ActingUserId,
    accounts: Accounts,
) -> AccountRead:
    """Toggle whether the portfolio page is visible to everyone."""
    return AccountRead.model_validate(accounts.set_visibility(user_id, payload.is_public))


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limited("account_deletion"))],
)
def delete_my_account(user_id: ActingUserId, accounts: Accounts) -> Response:
    """Delete the account with its resume versions and saved applications."""
    accounts.delete(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
