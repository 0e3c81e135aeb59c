"""Pydantic schemas for the job application assistant."""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class JobPosting(BaseModel):
    """Job posting the assistant tailors against."""

    job_description: str = Field(
        ...,
        min_length=50,
        description="Job description text (responsibilities, requirements, company info).",
    )
    job_title: str | None = Field(default=None, max_length=200)
    company_name: str | None = Field(default=None, max_length=200)


class GenerateRequest(JobPosting):
    cover_letter: bool = Field(default=False, description="Generate a cover letter.")
    tailored_resume: bool = Field(default=False, description="Generate a tailored resume.")

    @model_validator(mode="after")
    def _require_one_document(self) -> "GenerateRequest":
        if not (self.cover_letter or self.tailored_resume):
            raise ValueError("Select at least one document to generate.")
        return self


class JobFitAnalysis(BaseModel):
    """Structured fit assessment of the published resume against a posting."""

    summary: str = Field(
        ...,
        description="Short narrative summary of the candidate's alignment with the job.",
    )
    fit_score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Overall fit score from 0 to 100.",
    )
    fit_score_rationale: str = Field(
        ...,
        description="Why the score was assigned, referencing key strengths/gaps.",
    )
    strengths: list[str] = Field(
        ...,
        description="Key strengths of the candidate for this role.",
    )
    gaps: list[str] = Field(
        ...,
        description="Missing experience compared to the job requirements.",
    )
    missing_keywords: list[str] = Field(
        ...,
        description="Job keywords missing or weakly represented in the resume.",
    )
    recommendations: list[str] = Field(
        ...,
        description="Actionable steps to improve the application.",
    )
    confidence: Literal["low", "medium", "high"] = Field(
        default="medium",
        description="Confidence in the analysis given input quality.",
    )


class JobInfo(BaseModel):
    title: str
    company: str


ResumeSource = Literal["published", "upload"]


class ResumeUsed(BaseModel):
    """The resume a result was generated from; pass it back when saving the application."""

    source: ResumeSource
    version: int | None = Field(default=None, description="Published version number, for published resumes.")
    snapshot: dict[str, Any] = Field(..., description="Resume content exactly as sent to the model.")


class JobFitResponse(BaseModel):
    analysis: JobFitAnalysis
    job_info: JobInfo
    credits_used: int
    remaining_credits: int
    resume: ResumeUsed
    warnings: list[str] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    tailored_resume: str | None = Field(default=None, description="Markdown resume.")
    cover_letter: str | None = Field(default=None, description="Markdown cover letter.")
    job_info: JobInfo
    credits_used: int
    remaining_credits: int
    resume: ResumeUsed
    warnings: list[str] = Field(default_factory=list)
