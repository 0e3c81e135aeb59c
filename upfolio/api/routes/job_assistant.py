from __future__ import annotations

from typing import Annotated, TypeVar

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from upfolio.api.deps import ActingUserId, get_job_application_service, get_job_assistant_service
from upfolio.core.auth import verify_api_key
from upfolio.core.file_validation import read_upload_file_limited
from upfolio.schemas.job_assistant import GenerateRequest, GenerateResponse, JobFitResponse, JobPosting
from upfolio.schemas.job_history import (
    JobApplicationCreate,
    JobApplicationCreated,
    JobApplicationPage,
    JobApplicationRead,
    JobApplicationSummary,
)
from upfolio.services.job_assistant_service import JobAssistantService
from upfolio.services.job_history_service import DEFAULT_PAGE_SIZE, JobApplicationService
from upfolio.services.resume_parser_service import ParsedResume, parse_resume_pdf

router = APIRouter(
    prefix="/job-assistant",
    tags=["Job Assistant"],
    dependencies=[Depends(verify_api_key)],
)

Assistant = Annotated[JobAssistantService, Depends(get_job_assistant_service)]
History = Annotated[JobApplicationService, Depends(get_job_application_service)]

FormModel = TypeVar("FormModel", bound=BaseModel)


def _from_form(model: type[FormModel], **fields) -> FormModel:
    """Validate multipart form fields with the JSON body schema (422 on failure)."""
    try:
        return model(**fields)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


async def _parse_upload(resume_file: UploadFile) -> ParsedResume:
    file_bytes = await read_upload_file_limited(resume_file)
    return await parse_resume_pdf(resume_file.filename, resume_file.content_type, file_bytes)


@router.post("/analyze-fit", response_model=JobFitResponse)
async def analyze_fit(payload: JobPosting, user_id: ActingUserId, assistant: Assistant) -> JobFitResponse:
    """Score the published resume against a job posting.

    Costs ``job_fit_analysis`` credits; answers 402 without calling the
    model when the balance is short.
    """
    return await assistant.analyze_fit(user_id, payload)


@router.post("/analyze-fit/upload", response_model=JobFitResponse)
async def analyze_fit_upload(
    user_id: ActingUserId,
    assistant: Assistant,
    resume_file: UploadFile = File(..., description="Resume in PDF format"),
    job_description: str = Form(...),
    job_title: str | None = Form(default=None),
    company_name: str | None = Form(default=None),
) -> JobFitResponse:
    """Score an uploaded PDF resume against a job posting.

    Nothing is stored; the published version, if any, is not consulted.
    """
    job = _from_form(JobPosting, job_description=job_description, job_title=job_title, company_name=company_name)
    uploaded = await _parse_upload(resume_file)
    return await assistant.analyze_fit(user_id, job, uploaded=uploaded)


@router.post("/generate", response_model=GenerateResponse)
async def generate_documents(
    payload: GenerateRequest,
    user_id: ActingUserId,
    assistant: Assistant,
) -> GenerateResponse:
    """Generate a tailored resume and/or cover letter.

    The selected documents are priced together and charged once; a model
    failure refunds the whole charge.
    """
    return await assistant.generate(user_id, payload)


@router.post("/generate/upload", response_model=GenerateResponse)
async def generate_documents_upload(
    user_id: ActingUserId,
    assistant: Assistant,
    resume_file: UploadFile = File(..., description="Resume in PDF format"),
    job_description: str = Form(...),
    job_title: str | None = Form(default=None),
    company_name: str | None = Form(default=None),
    cover_letter: bool = Form(default=False),
    tailored_resume: bool = Form(default=False),
) -> GenerateResponse:
    """Same as ``/generate``, tailoring an uploaded PDF resume."""
    request = _from_form(
        GenerateRequest,
        job_description=job_description,
        job_title=job_title,
        company_name=company_name,
        cover_letter=cover_letter,
        tailored_resume=tailored_resume,
    )
    uploaded = await _parse_upload(resume_file)
    return await assistant.generate(user_id, request, uploaded=uploaded)


@router.post("/history", response_model=JobApplicationCreated, status_code=status.HTTP_201_CREATED)
def save_application(payload: JobApplicationCreate, user_id: ActingUserId, history: History) -> JobApplicationCreated:
    """Save generated documents together with the posting and resume they came from."""
    return JobApplicationCreated.model_validate(history.save(user_id, payload))


@router.get("/history", response_model=JobApplicationPage)
def list_applications(
    user_id: ActingUserId,
    history: History,
    limit: Annotated[int, Query(description="Page size, 1 to 100.")] = DEFAULT_PAGE_SIZE,
    offset: Annotated[int, Query(description="Rows to skip.")] = 0,
) -> JobApplicationPage:
    """The caller's saved applications, newest first."""
    items, total = history.list_applications(user_id, limit=limit, offset=offset)
    return JobApplicationPage(
        applications=[JobApplicationSummary.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/history/{application_id}", response_model=JobApplicationRead)
def read_application(application_id: int, user_id: ActingUserId, history: History) -> JobApplicationRead:
    return JobApplicationRead.model_validate(history.get(application_id, user_id))


@router.delete("/history/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(application_id: int, user_id: ActingUserId, history: History) -> Response:
    history.delete(application_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
