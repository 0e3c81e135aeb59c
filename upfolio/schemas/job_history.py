"""Pydantic schemas for saved job applications."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from upfolio.schemas.job_assistant import ResumeSource


class JobApplicationCreate(BaseModel):
    """A generated application the user wants to keep.

    At least one of the four document fields must be non-empty.
    """

    job_title: str = Field(..., min_length=1, max_length=200)
    company_name: str = Field(..., min_length=1, max_length=200)
    job_description: str = Field(..., min_length=1)
    job_url: str | None = Field(default=None, max_length=2048)
    resume_source: ResumeSource
    resume_version: int | None = Field(
        default=None,
        ge=1,
        description="Published version number the documents were generated from.",
    )
    resume_snapshot: dict[str, Any] = Field(
        ...,
        min_length=1,
        description="Resume content exactly as it was sent to the model.",
    )
    tailored_resume: str | None = None
    cover_letter: str | None = None
    tailored_resume_edited: str | None = None
    cover_letter_edited: str | None = None


class JobApplicationCreated(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class JobApplicationSummary(BaseModel):
    """History row; documents and the resume snapshot are left out."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    company_name: str
    job_url: str | None = None
    resume_source: ResumeSource
    resume_version: int | None = None
    has_tailored_resume: bool
    has_cover_letter: bool
    created_at: datetime


class JobApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    company_name: str
    job_description: str
    job_url: str | None = None
    resume_source: ResumeSource
    resume_version: int | None = None
    resume_snapshot: dict[str, Any]
    tailored_resume: str | None = None
    cover_letter: str | None = None
    tailored_resume_edited: str | None = None
    cover_letter_edited: str | None = None
    created_at: datetime
    updated_at: datetime


class JobApplicationPage(BaseModel):
    applications: list[JobApplicationSummary]
    total: int
    limit: int
    offset: int
