from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from upfolio.api.deps import ActingUserId, get_version_service
from upfolio.core.auth import verify_api_key
from upfolio.core.file_validation import read_upload_file_limited
from upfolio.schemas.resume import (
    ResumeContentIn,
    ResumeContentUpdate,
    ResumeUploadResponse,
    ResumeVersionList,
    ResumeVersionRead,
    ResumeVersionSummary,
)
from upfolio.services.resume_parser_service import parse_resume_pdf
from upfolio.services.versioning_service import ResumeVersionService

router = APIRouter(
    prefix="/resume-versions",
    tags=["Resume Versions"],
    dependencies=[Depends(verify_api_key)],
)

Versions = Annotated[ResumeVersionService, Depends(get_version_service)]


@router.get("", response_model=ResumeVersionList)
def list_versions(
    user_id: ActingUserId,
    versions: Versions,
    include_archived: Annotated[bool, Query(description="Include archived versions.")] = False,
) -> ResumeVersionList:
    """List the caller's versions, newest first."""
    items = versions.list_versions(user_id, include_archived=include_archived)
    return ResumeVersionList(versions=[ResumeVersionSummary.model_validate(v) for v in items])


@router.post("", response_model=ResumeVersionRead, status_code=status.HTTP_201_CREATED)
def create_version(payload: ResumeContentIn, user_id: ActingUserId, versions: Versions) -> ResumeVersionRead:
    """Save structured resume content as a new draft version."""
    version = versions.create_draft(user_id, payload.content, pdf_url=payload.pdf_url)
    return ResumeVersionRead.model_validate(version)


@router.post("/upload", response_model=ResumeUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_resume(
    user_id: ActingUserId,
    versions: Versions,
    resume_file: UploadFile = File(..., description="Resume in PDF format"),
) -> ResumeUploadResponse:
    """Create a draft version from an uploaded PDF.

    The extracted plain text is stored as the draft content; it is not
    published automatically.

    Raises:
        HTTPException: 413 if the file exceeds the size limit.
        ValidationAppError: 400 if the file is not a readable PDF.
    """
    file_bytes = await read_upload_file_limited(resume_file)
    parsed = await parse_resume_pdf(resume_file.filename, resume_file.content_type, file_bytes)
    version = versions.create_draft(user_id, parsed.to_content())
    return ResumeUploadResponse(
        version=ResumeVersionSummary.model_validate(version),
        char_count=len(parsed.text),
        preview=parsed.preview,
        warnings=parsed.warnings,
    )


@router.get("/{version_id}", response_model=ResumeVersionRead)
def read_version(version_id: int, user_id: ActingUserId, versions: Versions) -> ResumeVersionRead:
    return ResumeVersionRead.model_validate(versions.get_version(version_id, user_id))


@router.put("/{version_id}", response_model=ResumeVersionRead)
def edit_version(
    version_id: int,
    payload: ResumeContentUpdate,
    user_id: ActingUserId,
    versions: Versions,
) -> ResumeVersionRead:
    """Replace a version's content. Editing the published version updates the live page."""
    return ResumeVersionRead.model_validate(versions.edit(version_id, user_id, payload.content))


@router.post("/{version_id}/publish", response_model=ResumeVersionSummary)
def publish_version(version_id: int, user_id: ActingUserId, versions: Versions) -> ResumeVersionSummary:
    """Publish this version; any other published version is unpublished."""
    return ResumeVersionSummary.model_validate(versions.publish(version_id, user_id))


@router.post("/{version_id}/unpublish", response_model=ResumeVersionSummary)
def unpublish_version(version_id: int, user_id: ActingUserId, versions: Versions) -> ResumeVersionSummary:
    return ResumeVersionSummary.model_validate(versions.unpublish(version_id, user_id))


@router.post("/{version_id}/archive", response_model=ResumeVersionSummary)
def archive_version(version_id: int, user_id: ActingUserId, versions: Versions) -> ResumeVersionSummary:
    """Archive a draft. The published version answers 409."""
    return ResumeVersionSummary.model_validate(versions.archive(version_id, user_id))


@router.post("/{version_id}/unarchive", response_model=ResumeVersionSummary)
def unarchive_version(version_id: int, user_id: ActingUserId, versions: Versions) -> ResumeVersionSummary:
    return ResumeVersionSummary.model_validate(versions.unarchive(version_id, user_id))
