from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String
from sqlalchemy.orm import Mapped, relationship

from upfolio.db.base import Base
from upfolio.models.common import TimestampMixin

if TYPE_CHECKING:
    from upfolio.models.job_application import JobApplication
    from upfolio.models.resume_version import ResumeVersion


class Account(Base, TimestampMixin):
    """A portfolio owner, including its credit balance for metered AI features."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="ck_accounts_credit_balance_non_negative"),
        CheckConstraint("credits_used >= 0", name="ck_accounts_credits_used_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    display_name = Column(String(255), nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    credit_balance = Column(Integer, default=0, nullable=False)
    credits_used = Column(Integer, default=0, nullable=False)

    resume_versions: Mapped[List["ResumeVersion"]] = relationship(
        "ResumeVersion",
        back_populates="owner",
        cascade="all, delete-orphan",
        order_by="ResumeVersion.version.desc()",
    )
    job_applications: Mapped[List["JobApplication"]] = relationship(
        "JobApplication",
        back_populates="owner",
        cascade="all, delete-orphan",
        order_by="JobApplication.created_at.desc()",
    )
