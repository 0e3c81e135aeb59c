from __future__ import annotations

from upfolio.api.routes.accounts import router as accounts_router
from upfolio.api.routes.credits import router as credits_router
from upfolio.api.routes.health import router as health_router
from upfolio.api.routes.job_assistant import router as job_assistant_router
from upfolio.api.routes.portfolio import router as portfolio_router
from upfolio.api.routes.resume_versions import router as resume_versions_router

__all__ = [
    "accounts_router",
    "credits_router",
    "health_router",
    "job_assistant_router",
    "portfolio_router",
    "resume_versions_router",
]
