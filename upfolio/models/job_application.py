from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import JSON, CheckConstraint, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, relationship

from upfolio.db.base import Base
from upfolio.models.common import TimestampMixin

if TYPE_CHECKING:
    from upfolio.models.account import Account


class JobApplication(Base, TimestampMixin):
    """A saved job application: the posting, the resume used and the generated documents."""

    __tablename__ = "job_applications"
    __table_args__ = (
        CheckConstraint(
            "resume_source IN ('published', 'upload')",
            name="ck_job_applications_resume_source",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    job_title = Column(String(200), nullable=False)
    company_name = Column(String(200), nullable=False)
    job_description = Column(Text, nullable=False)
    job_url = Column(String(2048), nullable=True)
    resume_source = Column(String(16), nullable=False)
    resume_version = Column(Integer, nullable=True)
    resume_snapshot = Column(JSON, nullable=False)
    tailored_resume = Column(Text, nullable=True)
    cover_letter = Column(Text, nullable=True)
    tailored_resume_edited = Column(Text, nullable=True)
    cover_letter_edited = Column(Text, nullable=True)

    owner: Mapped["Account"] = relationship("Account", back_populates="job_applications")

    @property
    def has_tailored_resume(self) -> bool:
        return bool(self.tailored_resume_edited or self.tailored_resume)

    @property
    def has_cover_letter(self) -> bool:
        return bool(self.cover_letter_edited or self.cover_letter)
