"""Job application assistant: credit-metered AI features.

Tailors a resume to a job posting. The resume is either the acting user's
published version or a PDF uploaded with the request. The pipeline is:
- Input preparation (truncation to model limits)
- Resolve the resume: uploaded text, else the published version
- Debit credits *before* any model call (402 when the balance is short)
- LLM orchestration, with a refund when the provider fails
- Output validation against the response schema
"""

from __future__ import annotations

import json
import logging
from typing import Any, NoReturn

from pydantic import ValidationError

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.core.config import settings
from upfolio.core.errors import LLMAppError, NotFoundAppError, ValidationAppError
from upfolio.schemas.job_assistant import (
    GenerateRequest,
    GenerateResponse,
    JobFitAnalysis,
    JobFitResponse,
    JobInfo,
    JobPosting,
    ResumeUsed,
)
from upfolio.services.credit_service import CreditLedger, FeatureKind
from upfolio.services.resume_parser_service import ParsedResume
from upfolio.services.versioning_service import ResumeVersionService

logger = logging.getLogger(__name__)

DEFAULT_JOB_TITLE = "Position"
DEFAULT_COMPANY = "Company"


def _truncate(text: str, max_chars: int) -> tuple[str, bool]:
    """Truncate text to max_chars if needed.

    Returns:
        Tuple of (truncated_text, was_truncated).
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars], True


def _job_header(job_title: str, company_name: str, job_description: str) -> str:
    return f"Position: {job_title} at {company_name}\n{job_description}"


def build_fit_prompt(resume_json: str, job_title: str, company_name: str, job_description: str) -> str:
    """Prompt for the structured job-fit analysis (JSON output)."""
    return f"""
You are an expert career advisor and ATS specialist. Compare the candidate's resume with the job posting and return a structured JSON response.

CRITICAL RULES:
- Return ONLY valid JSON matching the exact schema below
- Do NOT invent experience that is not present in the resume
- Be specific and actionable in all recommendations

REQUIRED JSON STRUCTURE:
{{
  "summary": "Brief narrative summary of the candidate's fit (2-3 sentences)",
  "fit_score": <integer 0-100>,
  "fit_score_rationale": "Explanation for the score citing key strengths and gaps",
  "strengths": ["strength 1", ...],
  "gaps": ["gap 1", ...],
  "missing_keywords": ["keyword1", ...],
  "recommendations": ["actionable step 1", ...],
  "confidence": "low" | "medium" | "high"
}}

FIT SCORE GUIDANCE: 0-30 poor, 31-60 partial, 61-85 good, 86-100 excellent.

RESUME DATA:
{resume_json}

JOB POSTING:
{_job_header(job_title, company_name, job_description)}

Return only the JSON object, no additional text.
""".strip()


def build_tailored_resume_prompt(resume_json: str, job_title: str, company_name: str, job_description: str) -> str:
    return f"""
You are an expert resume writer and ATS optimization specialist.

TASK: Rewrite this resume so it is tailored to the job posting below and ATS-friendly.

RESUME DATA:
{resume_json}

JOB POSTING:
{_job_header(job_title, company_name, job_description)}

REQUIREMENTS:
1. Re-order and emphasize sections to match the job's priorities
2. Rewrite bullet points with action verbs and quantified results
3. Use keywords from the job description naturally
4. Stay truthful: reframe existing content, never fabricate experience
5. Keep it to roughly two pages
6. Output clean, professional markdown without tables or columns

Generate the tailored resume now:
""".strip()


def build_cover_letter_prompt(resume_json: str, job_title: str, company_name: str, job_description: str) -> str:
    return f"""
You are an expert career coach who writes personalized cover letters that get interviews.

TASK: Write a cover letter for this application.

CANDIDATE RESUME:
{resume_json}

JOB POSTING:
{_job_header(job_title, company_name, job_description)}

REQUIREMENTS:
1. Professional, personable and enthusiastic tone
2. Highlight 2-3 achievements from the resume that match the requirements
3. Three to four concise paragraphs with a clear call to action
4. Address it to the hiring manager for the {job_title} position at {company_name}
5. Use the candidate's real name and contact details; output markdown

Generate the cover letter now:
""".strip()


class JobAssistantService:
    """Runs metered AI features against the acting user's resume.

    Attributes:
        llm: LLM client adapter.
        ledger: Credit ledger used to charge (and refund) features.
        versions: Resume version policy, used to find the published resume.
    """

    def __init__(
        self,
        llm: AbstractLLMClient,
        ledger: CreditLedger,
        versions: ResumeVersionService,
    ) -> None:
        self.llm = llm
        self.ledger = ledger
        self.versions = versions

    def _load_resume(self, user_id: int, uploaded: ParsedResume | None, warnings: list[str]) -> tuple[str, ResumeUsed]:
        """Pick the resume to prompt with and serialize it.

        An uploaded PDF is used as-is and nothing is read from the version
        store; otherwise the published version is used.

        Raises:
            NotFoundAppError: If nothing is uploaded and nothing is published.
            ValidationAppError: If the uploaded PDF yielded no text.
        """
        if uploaded is not None:
            if not uploaded.text:
                raise ValidationAppError(
                    code="empty_resume_text",
                    message="No text could be extracted from the uploaded resume.",
                )
            warnings.extend(uploaded.warnings)
            used = ResumeUsed(source="upload", version=None, snapshot=uploaded.to_content())
        else:
            published = self.versions.get_published(user_id)
            if published is None:
                raise NotFoundAppError(
                    code="no_published_resume",
                    message="No published resume found. Please upload and publish your resume first.",
                )
            used = ResumeUsed(source="published", version=published.version, snapshot=published.content)

        resume_json, truncated = _truncate(
            json.dumps(used.snapshot, indent=2, ensure_ascii=False),
            settings.app.max_resume_chars,
        )
        if truncated:
            warnings.append("Resume was truncated to fit model limits.")
        return resume_json, used

    def _prepare_job(self, job: JobPosting, warnings: list[str]) -> tuple[str, JobInfo]:
        description, truncated = _truncate(job.job_description.strip(), settings.app.max_job_desc_chars)
        if truncated:
            warnings.append("Job description was truncated to fit model limits.")
        info = JobInfo(
            title=(job.job_title or "").strip() or DEFAULT_JOB_TITLE,
            company=(job.company_name or "").strip() or DEFAULT_COMPANY,
        )
        return description, info

    def _refund_and_raise(self, user_id: int, features: tuple[FeatureKind, ...], exc: Exception) -> NoReturn:
        self.ledger.refund(user_id, *features)
        logger.error(
            "job_assistant.llm_failed",
            extra={
                "features": [f.value for f in features],
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        raise LLMAppError(
            code="llm_request_failed",
            message="The AI service failed to complete the request. Your credits were refunded.",
        ) from exc

    async def analyze_fit(
        self,
        user_id: int,
        job: JobPosting,
        *,
        uploaded: ParsedResume | None = None,
    ) -> JobFitResponse:
        """Score the published (or uploaded) resume against a job posting.

        Raises:
            NotFoundAppError: If nothing is uploaded and nothing is published.
            ValidationAppError: If the uploaded PDF yielded no text.
            InsufficientCreditsAppError: If the balance does not cover the analysis.
            LLMAppError: If the model call fails (credits are refunded).
        """
        warnings: list[str] = []
        resume_json, resume = self._load_resume(user_id, uploaded, warnings)
        description, info = self._prepare_job(job, warnings)

        features = (FeatureKind.JOB_FIT_ANALYSIS,)
        debit = self.ledger.require_debit(user_id, *features)

        prompt = build_fit_prompt(resume_json, info.title, info.company, description)
        try:
            raw: dict[str, Any] = await self.llm.generate_json(
                prompt, schema=JobFitAnalysis.model_json_schema()
            )
            analysis = JobFitAnalysis.model_validate(raw)
        except (RuntimeError, ValidationError) as exc:
            self._refund_and_raise(user_id, features, exc)

        logger.info(
            "job_assistant.fit_analyzed",
            extra={
                "fit_score": analysis.fit_score,
                "credits_used": debit.cost,
                "resume_source": resume.source,
            },
        )
        return JobFitResponse(
            analysis=analysis,
            job_info=info,
            credits_used=debit.cost,
            remaining_credits=debit.balance,
            resume=resume,
            warnings=warnings,
        )

    async def generate(
        self,
        user_id: int,
        request: GenerateRequest,
        *,
        uploaded: ParsedResume | None = None,
    ) -> GenerateResponse:
        """Generate a tailored resume and/or cover letter in one charge."""
        warnings: list[str] = []
        resume_json, resume = self._load_resume(user_id, uploaded, warnings)
        description, info = self._prepare_job(request, warnings)

        features: tuple[FeatureKind, ...] = tuple(
            feature
            for feature, wanted in (
                (FeatureKind.TAILORED_RESUME, request.tailored_resume),
                (FeatureKind.COVER_LETTER, request.cover_letter),
            )
            if wanted
        )
        debit = self.ledger.require_debit(user_id, *features)

        args = (resume_json, info.title, info.company, description)
        tailored_resume: str | None = None
        cover_letter: str | None = None
        try:
            if request.tailored_resume:
                tailored_resume = await self.llm.generate_text(
                    build_tailored_resume_prompt(*args), temperature=0.7, max_tokens=3000
                )
            if request.cover_letter:
                cover_letter = await self.llm.generate_text(
                    build_cover_letter_prompt(*args), temperature=0.8, max_tokens=1800
                )
        except RuntimeError as exc:
            self._refund_and_raise(user_id, features, exc)

        logger.info(
            "job_assistant.documents_generated",
            extra={
                "features": [f.value for f in features],
                "credits_used": debit.cost,
                "resume_source": resume.source,
            },
        )
        return GenerateResponse(
            tailored_resume=tailored_resume,
            cover_letter=cover_letter,
            job_info=info,
            credits_used=debit.cost,
            remaining_credits=debit.balance,
            resume=resume,
            warnings=warnings,
        )
