"""Saved job applications.

Every read and delete is scoped to the acting user: an id belonging to
someone else answers ``not_owner``, an unknown id ``application_not_found``.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from upfolio.core.errors import NotFoundAppError, NotOwnerAppError, ValidationAppError
from upfolio.models import Account, JobApplication
from upfolio.schemas.job_history import JobApplicationCreate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

_DOCUMENT_FIELDS = ("tailored_resume", "cover_letter", "tailored_resume_edited", "cover_letter_edited")


class JobApplicationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _get_owned(self, application_id: int, acting_user_id: int) -> JobApplication:
        """Load an application and check the acting user owns it.

        Raises:
            NotFoundAppError: If the application does not exist.
            NotOwnerAppError: If it belongs to another user.
        """
        application = self.db.get(JobApplication, application_id)
        if application is None:
            raise NotFoundAppError(
                code="application_not_found",
                message="Application not found.",
                details={"application_id": application_id},
            )
        if application.user_id != acting_user_id:
            logger.warning(
                "job_history.not_owner",
                extra={"application_id": application_id, "acting_user_id": acting_user_id},
            )
            raise NotOwnerAppError(
                code="not_owner",
                message="You do not have permission to access this application.",
                details={"application_id": application_id},
            )
        return application

    def save(self, user_id: int, payload: JobApplicationCreate) -> JobApplication:
        """Store a generated application for later.

        Raises:
            ValidationAppError: If no document is present.
            NotFoundAppError: If the account does not exist.
        """
        documents = {name: getattr(payload, name) for name in _DOCUMENT_FIELDS}
        if not any(text and text.strip() for text in documents.values()):
            raise ValidationAppError(
                code="nothing_to_save",
                message="Nothing to save. Generate at least one document.",
            )
        if self.db.get(Account, user_id) is None:
            raise NotFoundAppError(code="account_not_found", message="Account not found.")

        application = JobApplication(user_id=user_id, **payload.model_dump())
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)
        logger.info(
            "job_history.saved",
            extra={
                "application_id": application.id,
                "resume_source": application.resume_source,
                "documents": [name for name, text in documents.items() if text],
            },
        )
        return application

    def list_applications(
        self,
        user_id: int,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[JobApplication], int]:
        """Newest-first page of the user's applications and the total count.

        Raises:
            ValidationAppError: If ``limit`` is outside 1..100 or ``offset`` is negative.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationAppError(
                code="invalid_limit",
                message=f"Limit must be between 1 and {MAX_PAGE_SIZE}.",
                details={"field": "limit"},
            )
        if offset < 0:
            raise ValidationAppError(
                code="invalid_offset",
                message="Offset must be non-negative.",
                details={"field": "offset"},
            )

        total = self.db.execute(
            select(func.count(JobApplication.id)).where(JobApplication.user_id == user_id)
        ).scalar_one()
        stmt = (
            select(JobApplication)
            .where(JobApplication.user_id == user_id)
            .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars()), total

    def get(self, application_id: int, acting_user_id: int) -> JobApplication:
        return self._get_owned(application_id, acting_user_id)

    def delete(self, application_id: int, acting_user_id: int) -> None:
        application = self._get_owned(application_id, acting_user_id)
        self.db.delete(application)
        self.db.commit()
        logger.info("job_history.deleted", extra={"application_id": application_id})
