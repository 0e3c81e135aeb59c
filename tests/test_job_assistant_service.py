"""Tests for the credit-metered job assistant (LLM mocked)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.core.errors import InsufficientCreditsAppError, LLMAppError, NotFoundAppError, ValidationAppError
from upfolio.schemas.job_assistant import GenerateRequest, JobPosting
from upfolio.services.credit_service import CreditLedger
from upfolio.services.job_assistant_service import (
    JobAssistantService,
    _truncate,
    build_fit_prompt,
)
from upfolio.services.resume_parser_service import ParsedResume
from upfolio.services.versioning_service import ResumeVersionService

JOB_DESCRIPTION = (
    "We are hiring a backend engineer to build Python services with FastAPI, "
    "PostgreSQL and background workers."
)

VALID_ANALYSIS = {
    "summary": "Strong backend background with direct FastAPI experience.",
    "fit_score": 82,
    "fit_score_rationale": "Matches the core stack; lacks queue experience.",
    "strengths": ["FastAPI", "PostgreSQL"],
    "gaps": ["Background workers"],
    "missing_keywords": ["Celery"],
    "recommendations": ["Mention any async job processing work."],
    "confidence": "high",
}


@pytest.fixture
def llm() -> AsyncMock:
    return AsyncMock(spec=AbstractLLMClient)


@pytest.fixture
def published_owner(db, make_account):
    def _make(username: str = "applicant", balance: int | None = None):
        account = make_account(username, balance=balance)
        versions = ResumeVersionService(db)
        draft = versions.create_draft(account.id, {"personal_info": {"name": "Ada"}, "skills": ["Python"]})
        versions.publish(draft.id, account.id)
        return account

    return _make


@pytest.fixture
def assistant(db, llm) -> JobAssistantService:
    return JobAssistantService(llm=llm, ledger=CreditLedger(db), versions=ResumeVersionService(db))


class TestAnalyzeFit:
    @pytest.mark.asyncio
    async def test_success_debits_two_credits(self, db, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_json.return_value = VALID_ANALYSIS

        response = await assistant.analyze_fit(account.id, JobPosting(job_description=JOB_DESCRIPTION))

        assert response.analysis.fit_score == 82
        assert response.credits_used == 2
        assert response.remaining_credits == 498
        assert response.job_info.title == "Position"
        assert response.resume.source == "published"
        assert response.resume.version == 1
        assert response.job_info.company == "Company"
        llm.generate_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insufficient_credits_skips_model_call(self, assistant, llm, published_owner) -> None:
        account = published_owner(balance=1)

        with pytest.raises(InsufficientCreditsAppError):
            await assistant.analyze_fit(account.id, JobPosting(job_description=JOB_DESCRIPTION))

        llm.generate_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_failure_refunds(self, db, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_json.side_effect = RuntimeError("OpenAI API error: boom")

        with pytest.raises(LLMAppError) as exc_info:
            await assistant.analyze_fit(account.id, JobPosting(job_description=JOB_DESCRIPTION))

        assert exc_info.value.code == "llm_request_failed"
        balance = CreditLedger(db).balance_of(account.id)
        assert (balance.balance, balance.used) == (500, 0)

    @pytest.mark.asyncio
    async def test_invalid_model_output_refunds(self, db, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_json.return_value = {"summary": "missing everything else"}

        with pytest.raises(LLMAppError):
            await assistant.analyze_fit(account.id, JobPosting(job_description=JOB_DESCRIPTION))

        assert CreditLedger(db).balance_of(account.id).balance == 500

    @pytest.mark.asyncio
    async def test_requires_published_resume(self, assistant, llm, make_account) -> None:
        account = make_account("drafter")

        with pytest.raises(NotFoundAppError) as exc_info:
            await assistant.analyze_fit(account.id, JobPosting(job_description=JOB_DESCRIPTION))

        assert exc_info.value.code == "no_published_resume"
        llm.generate_json.assert_not_awaited()


class TestGenerate:
    @pytest.mark.asyncio
    async def test_both_documents_charged_once(self, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_text.side_effect = ["# Tailored resume", "Dear hiring manager"]

        response = await assistant.generate(
            account.id,
            GenerateRequest(
                job_description=JOB_DESCRIPTION,
                job_title="Backend Engineer",
                company_name="Acme",
                tailored_resume=True,
                cover_letter=True,
            ),
        )

        assert response.tailored_resume == "# Tailored resume"
        assert response.cover_letter == "Dear hiring manager"
        assert response.credits_used == 30
        assert response.remaining_credits == 470
        assert response.job_info.company == "Acme"
        assert llm.generate_text.await_count == 2

    @pytest.mark.asyncio
    async def test_cover_letter_only(self, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_text.return_value = "Dear hiring manager"

        response = await assistant.generate(
            account.id, GenerateRequest(job_description=JOB_DESCRIPTION, cover_letter=True)
        )

        assert response.tailored_resume is None
        assert response.credits_used == 10

    @pytest.mark.asyncio
    async def test_balance_short_for_combined_request(self, db, assistant, llm, published_owner) -> None:
        account = published_owner(balance=25)

        with pytest.raises(InsufficientCreditsAppError) as exc_info:
            await assistant.generate(
                account.id,
                GenerateRequest(job_description=JOB_DESCRIPTION, cover_letter=True, tailored_resume=True),
            )

        assert exc_info.value.details == {"required": 30, "available": 25}
        assert CreditLedger(db).balance_of(account.id).balance == 25
        llm.generate_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_failure_refunds_whole_charge(self, db, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_text.side_effect = ["# Tailored resume", RuntimeError("timeout")]

        with pytest.raises(LLMAppError):
            await assistant.generate(
                account.id,
                GenerateRequest(job_description=JOB_DESCRIPTION, cover_letter=True, tailored_resume=True),
            )

        assert CreditLedger(db).balance_of(account.id).balance == 500

    def test_request_requires_a_document(self) -> None:
        with pytest.raises(ValueError):
            GenerateRequest(job_description=JOB_DESCRIPTION)


class TestPromptHelpers:
    def test_truncate(self) -> None:
        assert _truncate("abcdef", 10) == ("abcdef", False)
        assert _truncate("abcdef", 3) == ("abc", True)

    def test_fit_prompt_contains_inputs(self) -> None:
        prompt = build_fit_prompt('{"name": "Ada"}', "Engineer", "Acme", JOB_DESCRIPTION)

        assert '{"name": "Ada"}' in prompt
        assert "Position: Engineer at Acme" in prompt
        assert '"fit_score": <integer 0-100>' in prompt


class TestUploadedResume:
    @staticmethod
    def _uploaded(text: str = "Grace Hopper\nCOBOL, compilers, Navy", warnings: list[str] | None = None) -> ParsedResume:
        return ParsedResume(file_name="cv.pdf", pages=1, text=text, warnings=warnings or [])

    @pytest.mark.asyncio
    async def test_upload_used_without_published_version(self, assistant, llm, make_account) -> None:
        account = make_account("uploader")
        llm.generate_json.return_value = VALID_ANALYSIS

        response = await assistant.analyze_fit(
            account.id, JobPosting(job_description=JOB_DESCRIPTION), uploaded=self._uploaded()
        )

        assert response.resume.source == "upload"
        assert response.resume.version is None
        assert response.resume.snapshot["text"] == "Grace Hopper\nCOBOL, compilers, Navy"
        prompt = llm.generate_json.await_args.args[0]
        assert "Grace Hopper" in prompt

    @pytest.mark.asyncio
    async def test_upload_takes_precedence_over_published(self, assistant, llm, published_owner) -> None:
        account = published_owner()
        llm.generate_text.return_value = "Dear hiring manager"

        response = await assistant.generate(
            account.id,
            GenerateRequest(job_description=JOB_DESCRIPTION, cover_letter=True),
            uploaded=self._uploaded(warnings=["Very little text extracted."]),
        )

        prompt = llm.generate_text.await_args.args[0]
        assert "Grace Hopper" in prompt
        assert "Ada" not in prompt
        assert response.resume.source == "upload"
        assert "Very little text extracted." in response.warnings
        assert response.credits_used == 10

    @pytest.mark.asyncio
    async def test_empty_upload_rejected_before_debit(self, db, assistant, llm, make_account) -> None:
        account = make_account("blank")

        with pytest.raises(ValidationAppError) as exc_info:
            await assistant.analyze_fit(
                account.id, JobPosting(job_description=JOB_DESCRIPTION), uploaded=self._uploaded(text="")
            )

        assert exc_info.value.code == "empty_resume_text"
        assert CreditLedger(db).balance_of(account.id).balance == 500
        llm.generate_json.assert_not_awaited()
