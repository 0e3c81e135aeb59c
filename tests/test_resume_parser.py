"""Tests for resume PDF validation, extraction and normalization."""

import io
import time
from unittest.mock import patch

import pytest
from pypdf import PdfWriter

from upfolio.core.config import settings
from upfolio.core.errors import ValidationAppError
from upfolio.services.resume_parser_service import parse_resume_pdf
from upfolio.utils.pdf_extractor import (
    extract_text_from_pdf_bytes,
    has_pdf_signature,
    normalize_text,
)


def make_pdf(num_pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(num_pages):
        writer.add_blank_page(width=612, height=792)  # US Letter size
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestPdfExtractor:
    def test_signature(self) -> None:
        assert has_pdf_signature(b"%PDF-1.7\n...") is True
        assert has_pdf_signature(b"PK\x03\x04") is False
        assert has_pdf_signature(b"") is False

    def test_extract_within_page_limit(self) -> None:
        text, pages = extract_text_from_pdf_bytes(make_pdf(3), max_pages=3)

        assert isinstance(text, str)
        assert pages == 3

    def test_extract_rejects_too_many_pages(self) -> None:
        with pytest.raises(ValueError) as exc_info:
            extract_text_from_pdf_bytes(make_pdf(4), max_pages=3)

        message = str(exc_info.value)
        assert "too many pages" in message.lower()
        assert "4" in message and "3" in message

    def test_extract_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            extract_text_from_pdf_bytes(b"%PDF-1.4\nnot really a pdf", max_pages=3)

    def test_normalize_text(self) -> None:
        raw = "Ada   Lovelace\r\n\r\n\r\n\r\nEngineer \t at  Acme\r"
        assert normalize_text(raw) == "Ada Lovelace\n\nEngineer at Acme"


class TestParseResumePdf:
    @pytest.mark.asyncio
    async def test_blank_pdf_parses_with_warning(self) -> None:
        parsed = await parse_resume_pdf("cv.pdf", "application/pdf", make_pdf(1))

        assert parsed.pages == 1
        assert parsed.text == ""
        assert parsed.warnings
        assert parsed.to_content() == {
            "source": "pdf_upload",
            "file_name": "cv.pdf",
            "pages": 1,
            "text": "",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("content_type", "data", "code"),
        [
            ("application/msword", b"%PDF-1.4", "unsupported_file_type"),
            ("application/pdf", b"", "empty_file"),
            ("application/pdf", b"PK\x03\x04renamed.docx", "invalid_file_signature"),
        ],
    )
    async def test_rejects_bad_uploads(self, content_type, data, code) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await parse_resume_pdf("cv", content_type, data)
        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_page_limit_becomes_validation_error(self) -> None:
        too_many = make_pdf(settings.app.max_pdf_pages + 1)

        with pytest.raises(ValidationAppError) as exc_info:
            await parse_resume_pdf("cv.pdf", "application/pdf", too_many)

        assert exc_info.value.code == "invalid_pdf"

    @pytest.mark.asyncio
    async def test_extraction_timeout(self) -> None:
        def slow_extraction(data, *, max_pages):
            time.sleep(0.5)
            return "text", 1

        with patch("upfolio.services.resume_parser_service.extract_text_from_pdf_bytes", slow_extraction), patch.object(
            settings.app, "file_extraction_timeout_seconds", 0.05
        ):
            with pytest.raises(ValidationAppError) as exc_info:
                await parse_resume_pdf("cv.pdf", "application/pdf", b"%PDF-1.4\n%test")

        assert exc_info.value.code == "extraction_timeout"
