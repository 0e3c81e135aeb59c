"""Resume versioning and publication policy.

Enforces the draft/published/archived state machine for resume versions
and the ownership checks guarding every transition. All operations take
the acting user id explicitly; nothing here reads ambient session state.

Invariants:
- At most one version per user has ``is_published`` set. Publishing runs
  "unpublish siblings + publish target" in one transaction while holding
  the owner's account row lock; a partial unique index backs it up, and a
  publish that loses a race against it is rejected as ``publish_conflict``.
- A published version is never archived: archiving it is rejected.
- Version numbers increase per user (max + 1), assigned under the same lock.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from upfolio.core.errors import (
    InvalidTransitionAppError,
    NotFoundAppError,
    NotOwnerAppError,
    ValidationAppError,
)
from upfolio.models import Account, ResumeVersion
from upfolio.models.common import utcnow

logger = logging.getLogger(__name__)


def _validate_content(content: Any) -> dict[str, Any]:
    if not isinstance(content, dict) or not content:
        raise ValidationAppError(
            code="invalid_resume_content",
            message="Resume content must be a non-empty JSON object.",
            details={"field": "content"},
        )
    return content


class ResumeVersionService:
    """Policy layer over resume versions.

    Attributes:
        db: Active SQLAlchemy session; each mutating call commits its own
            transaction.
        clock: Source of naive-UTC timestamps for ``updated_at`` bumps.
    """

    def __init__(self, db: Session, clock: Callable = utcnow) -> None:
        self.db = db
        self.clock = clock

    def _lock_owner(self, user_id: int) -> None:
        """Serialize writers for one user (no-op on SQLite, row lock on Postgres)."""
        owner = self.db.execute(
            select(Account.id).where(Account.id == user_id).with_for_update()
        ).scalar_one_or_none()
        if owner is None:
            raise NotFoundAppError(
                code="account_not_found",
                message="Account not found.",
            )

    def _get_owned(self, version_id: int, acting_user_id: int, *, lock: bool = False) -> ResumeVersion:
        """Load a version and check the acting user owns it.

        Raises:
            NotFoundAppError: If the version does not exist.
            NotOwnerAppError: If it belongs to another user.
        """
        stmt = select(ResumeVersion).where(ResumeVersion.id == version_id)
        if lock:
            stmt = stmt.with_for_update()
        version = self.db.execute(stmt).scalar_one_or_none()

        if version is None:
            raise NotFoundAppError(
                code="resume_version_not_found",
                message="Resume version not found.",
                details={"version_id": version_id},
            )
        if version.user_id != acting_user_id:
            logger.warning(
                "versioning.not_owner",
                extra={"version_id": version_id, "acting_user_id": acting_user_id},
            )
            raise NotOwnerAppError(
                code="not_owner",
                message="You do not have permission to modify this resume version.",
                details={"version_id": version_id},
            )
        return version

    def create_draft(
        self,
        user_id: int,
        content: dict[str, Any],
        *,
        pdf_url: str | None = None,
    ) -> ResumeVersion:
        """Create a new unpublished version numbered ``max(existing) + 1``."""
        content = _validate_content(content)

        try:
            self._lock_owner(user_id)
            current_max = self.db.execute(
                select(func.coalesce(func.max(ResumeVersion.version), 0)).where(
                    ResumeVersion.user_id == user_id
                )
            ).scalar_one()

            now = self.clock()
            version = ResumeVersion(
                user_id=user_id,
                version=current_max + 1,
                content=content,
                pdf_url=pdf_url,
                is_published=False,
                is_archived=False,
                created_at=now,
                updated_at=now,
            )
            self.db.add(version)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(version)
        logger.info(
            "versioning.draft_created",
            extra={"version_id": version.id, "version": version.version},
        )
        return version

    def list_versions(self, acting_user_id: int, *, include_archived: bool = False) -> list[ResumeVersion]:
        """List the acting user's versions, newest first."""
        stmt = select(ResumeVersion).where(ResumeVersion.user_id == acting_user_id)
        if not include_archived:
            stmt = stmt.where(ResumeVersion.is_archived.is_(False))
        stmt = stmt.order_by(ResumeVersion.version.desc())
        return list(self.db.execute(stmt).scalars())

    def get_version(self, version_id: int, acting_user_id: int) -> ResumeVersion:
        return self._get_owned(version_id, acting_user_id)

    def get_published(self, user_id: int) -> ResumeVersion | None:
        return self.db.execute(
            select(ResumeVersion).where(
                ResumeVersion.user_id == user_id,
                ResumeVersion.is_published.is_(True),
            )
        ).scalar_one_or_none()

    def publish(self, version_id: int, acting_user_id: int) -> ResumeVersion:
        """Make ``version_id`` the single published version of its owner.

        Siblings are unpublished in the same transaction, and a previously
        archived version is unarchived as it becomes published.

        Raises:
            InvalidTransitionAppError: ``publish_conflict`` when a concurrent
                publish for the same user committed first.
        """
        try:
            version = self._get_owned(version_id, acting_user_id)
            self._lock_owner(version.user_id)

            previous_ids = list(
                self.db.execute(
                    select(ResumeVersion.id).where(
                        ResumeVersion.user_id == version.user_id,
                        ResumeVersion.id != version.id,
                        ResumeVersion.is_published.is_(True),
                    )
                ).scalars()
            )
            if previous_ids:
                self.db.execute(
                    update(ResumeVersion)
                    .where(ResumeVersion.id.in_(previous_ids))
                    .values(is_published=False, updated_at=self.clock())
                )
                # The partial unique index must see siblings cleared first
                self.db.flush()

            version.is_published = True
            version.is_archived = False
            version.updated_at = self.clock()
            self.db.commit()
        except IntegrityError as exc:
            # Another publish for this user committed between our read and write
            self.db.rollback()
            logger.warning("versioning.publish_conflict", extra={"version_id": version_id})
            raise InvalidTransitionAppError(
                code="publish_conflict",
                message="Another version was published at the same time. Please retry.",
                details={"version_id": version_id},
            ) from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(version)
        logger.info(
            "versioning.published",
            extra={
                "version_id": version.id,
                "version": version.version,
                "unpublished_ids": previous_ids,
            },
        )
        return version

    def unpublish(self, version_id: int, acting_user_id: int) -> ResumeVersion:
        """Take a version offline; unpublishing a draft leaves it unchanged."""
        version = self._get_owned(version_id, acting_user_id)
        if not version.is_published:
            return version

        version.is_published = False
        version.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(version)
        logger.info("versioning.unpublished", extra={"version_id": version.id})
        return version

    def archive(self, version_id: int, acting_user_id: int) -> ResumeVersion:
        """Archive a draft.

        Raises:
            InvalidTransitionAppError: If the version is currently published;
                another version must be published first.
        """
        try:
            version = self._get_owned(version_id, acting_user_id, lock=True)
            if version.is_published:
                raise InvalidTransitionAppError(
                    code="cannot_archive_published",
                    message="The published version cannot be archived. Publish another version first.",
                    details={"version_id": version_id},
                )
        except Exception:
            self.db.rollback()
            raise

        if version.is_archived:
            # Release the row lock without writing
            self.db.rollback()
            return version

        version.is_archived = True
        version.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(version)
        logger.info("versioning.archived", extra={"version_id": version.id})
        return version

    def unarchive(self, version_id: int, acting_user_id: int) -> ResumeVersion:
        """Restore an archived version to draft. Never publishes it."""
        version = self._get_owned(version_id, acting_user_id)
        if not version.is_archived:
            return version

        version.is_archived = False
        version.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(version)
        logger.info("versioning.unarchived", extra={"version_id": version.id})
        return version

    def edit(self, version_id: int, acting_user_id: int, content: dict[str, Any]) -> ResumeVersion:
        """Overwrite a version's content; publish/archive flags are untouched."""
        content = _validate_content(content)
        version = self._get_owned(version_id, acting_user_id)

        version.content = content
        version.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(version)
        logger.info("versioning.edited", extra={"version_id": version.id})
        return version
