"""Resume PDF parsing for uploads.

Turns an uploaded PDF into the plain-text content of a new draft version.
Validation (MIME type, magic number, page count) happens here; the bytes are
read with size enforcement by ``upfolio.core.file_validation`` beforehand.
Converting the text into structured sections is done by an external AI
parser and is not part of this service.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any

from upfolio.core.config import settings
from upfolio.core.errors import ValidationAppError
from upfolio.utils.pdf_extractor import (
    extract_text_from_pdf_bytes,
    has_pdf_signature,
    normalize_text,
)

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


@dataclass
class ParsedResume:
    file_name: str | None
    pages: int
    text: str
    warnings: list[str] = field(default_factory=list)

    @property
    def preview(self) -> str:
        return self.text[: settings.app.resume_preview_chars]

    def to_content(self) -> dict[str, Any]:
        """Draft content stored on the resume version."""
        return {
            "source": "pdf_upload",
            "file_name": self.file_name,
            "pages": self.pages,
            "text": self.text,
        }


def _validate_upload(content_type: str | None, raw_bytes: bytes) -> None:
    if content_type != PDF_MIME_TYPE:
        raise ValidationAppError(
            code="unsupported_file_type",
            message="Unsupported file type. Only PDF files are allowed.",
        )
    if not raw_bytes:
        raise ValidationAppError(code="empty_file", message="Empty file.")
    if not has_pdf_signature(raw_bytes):
        raise ValidationAppError(
            code="invalid_file_signature",
            message="File signature doesn't match declared type. Expected PDF.",
        )


async def _extract_with_timeout(raw_bytes: bytes) -> tuple[str, int]:
    """Run the blocking extraction in a worker thread with a timeout.

    Raises:
        ValidationAppError: On timeout or when the PDF is rejected.
    """
    timeout_seconds = settings.app.file_extraction_timeout_seconds
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(
                extract_text_from_pdf_bytes,
                raw_bytes,
                max_pages=settings.app.max_pdf_pages,
            ),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "parse.extraction_timeout",
            extra={"timeout_seconds": timeout_seconds},
        )
        raise ValidationAppError(
            code="extraction_timeout",
            message=(
                f"File extraction took too long (timeout: {timeout_seconds}s). "
                "File may be corrupted or too complex."
            ),
            details={"timeout_seconds": timeout_seconds},
        ) from None
    except ValueError as exc:
        logger.warning("parse.rejected", extra={"error_msg": str(exc)})
        raise ValidationAppError(code="invalid_pdf", message=str(exc)) from exc


async def parse_resume_pdf(file_name: str | None, content_type: str | None, raw_bytes: bytes) -> ParsedResume:
    """Validate, extract and normalize an uploaded resume PDF.

    Args:
        file_name: Client-supplied file name (informational only).
        content_type: Declared MIME type.
        raw_bytes: File content, already size-checked.

    Returns:
        ParsedResume with normalized text and quality warnings.

    Raises:
        ValidationAppError: If the file is not an acceptable PDF.
    """
    _validate_upload(content_type, raw_bytes)

    extracted, pages = await _extract_with_timeout(raw_bytes)
    text = normalize_text(extracted)

    warnings: list[str] = []
    if len(text) < settings.app.min_resume_chars:
        warnings.append(
            "Very little text extracted. The PDF may be image-based (OCR is not supported)."
        )

    logger.info(
        "parse.success",
        extra={
            "size_bytes": len(raw_bytes),
            "pages": pages,
            "char_count": len(text),
            "text_hash": hashlib.sha256(text.encode()).hexdigest()[:16],
            "warnings_count": len(warnings),
        },
    )
    return ParsedResume(file_name=file_name, pages=pages, text=text, warnings=warnings)
