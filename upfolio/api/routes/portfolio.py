from __future__ import annotations

from fastapi import APIRouter

from upfolio.api.deps import DbSession, OptionalUserId
from upfolio.schemas.resume import PortfolioRead
from upfolio.services.portfolio_service import get_portfolio

router = APIRouter(prefix="/portfolios", tags=["Portfolio"])


@router.get("/{username}", response_model=PortfolioRead)
def read_portfolio(username: str, db: DbSession, viewer_id: OptionalUserId) -> PortfolioRead:
    """Public portfolio page data.

    No API key is required. Private accounts answer 404 to everyone but the
    owner, who gets a preview (``is_owner_preview=true``).
    """
    portfolio = get_portfolio(db, username, viewer_user_id=viewer_id)
    return PortfolioRead(
        username=portfolio.account.username,
        display_name=portfolio.account.display_name,
        version=portfolio.version.version,
        content=portfolio.version.content,
        pdf_url=portfolio.version.pdf_url,
        updated_at=portfolio.version.updated_at,
        is_owner_preview=portfolio.is_owner_preview,
    )
