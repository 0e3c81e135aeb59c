from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.adapters.llm.factory import create_llm_client
from upfolio.core.auth import get_acting_user_id, get_optional_user_id
from upfolio.db.session import get_db
from upfolio.services.account_service import AccountService
from upfolio.services.credit_service import CreditLedger
from upfolio.services.job_assistant_service import JobAssistantService
from upfolio.services.job_history_service import JobApplicationService
from upfolio.services.versioning_service import ResumeVersionService

DbSession = Annotated[Session, Depends(get_db)]
ActingUserId = Annotated[int, Depends(get_acting_user_id)]
OptionalUserId = Annotated[int | None, Depends(get_optional_user_id)]


def get_account_service(db: DbSession) -> AccountService:
    return AccountService(db)


def get_version_service(db: DbSession) -> ResumeVersionService:
    return ResumeVersionService(db)


def get_credit_ledger(db: DbSession) -> CreditLedger:
    return CreditLedger(db)


def get_llm_client() -> AbstractLLMClient:
    # Per request: a missing provider raises LLMAppError (502) here.
    return create_llm_client()


def get_job_assistant_service(
    llm: Annotated[AbstractLLMClient, Depends(get_llm_client)],
    ledger: Annotated[CreditLedger, Depends(get_credit_ledger)],
    versions: Annotated[ResumeVersionService, Depends(get_version_service)],
) -> JobAssistantService:
    return JobAssistantService(llm=llm, ledger=ledger, versions=versions)


def get_job_application_service(db: DbSession) -> JobApplicationService:
    return JobApplicationService(db)
