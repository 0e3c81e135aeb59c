"""Pydantic schemas for resume versions and portfolios."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from upfolio.models import VersionState


class ResumeContentIn(BaseModel):
    """Structured resume content submitted by the owner."""

    content: dict[str, Any] = Field(
        ...,
        description="Structured resume data (personal info, experience, skills, ...).",
        min_length=1,
    )
    pdf_url: str | None = Field(
        default=None,
        description="Reference to the stored source PDF, if any.",
        max_length=1024,
    )


class ResumeContentUpdate(BaseModel):
    content: dict[str, Any] = Field(..., min_length=1)


class ResumeVersionSummary(BaseModel):
    """Version metadata shown in the admin version list."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    version: int
    state: VersionState
    is_published: bool
    is_archived: bool
    pdf_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ResumeVersionRead(ResumeVersionSummary):
    content: dict[str, Any]


class ResumeVersionList(BaseModel):
    versions: list[ResumeVersionSummary]


class ResumeUploadResponse(BaseModel):
    """Draft created from an uploaded PDF."""

    version: ResumeVersionSummary
    char_count: int = Field(..., description="Characters extracted after normalization.")
    preview: str = Field(..., description="First N characters of the extracted text.")
    warnings: list[str] = Field(
        default_factory=list,
        description="Extraction quality warnings (e.g., likely image-only PDF).",
    )


class PortfolioRead(BaseModel):
    """Published resume rendered on a public portfolio page."""

    username: str
    display_name: str | None = None
    version: int
    content: dict[str, Any]
    pdf_url: str | None = None
    updated_at: datetime
    is_owner_preview: bool = Field(
        default=False,
        description="True when the owner is previewing a page that may be private.",
    )
