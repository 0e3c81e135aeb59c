from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, relationship

from upfolio.db.base import Base
from upfolio.models.common import TimestampMixin

if TYPE_CHECKING:
    from upfolio.models.account import Account


class VersionState(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ResumeVersion(Base, TimestampMixin):
    __tablename__ = "resume_versions"
    __table_args__ = (
        UniqueConstraint("user_id", "version", name="uq_resume_versions_user_version"),
        # At most one published version per user
        Index(
            "uq_resume_versions_one_published",
            "user_id",
            unique=True,
            postgresql_where=text("is_published"),
            sqlite_where=text("is_published = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    content = Column(JSON, nullable=False)
    pdf_url = Column(String(1024), nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)

    owner: Mapped["Account"] = relationship("Account", back_populates="resume_versions")

    @property
    def state(self) -> VersionState:
        if self.is_published:
            return VersionState.PUBLISHED
        if self.is_archived:
            return VersionState.ARCHIVED
        return VersionState.DRAFT
