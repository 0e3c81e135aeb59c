"""PDF helpers for resume uploads: signature check, text extraction, cleanup."""

from __future__ import annotations

import logging
import re
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF-"


def has_pdf_signature(data: bytes) -> bool:
    """Check the magic number so renamed non-PDF files are rejected."""
    if data.startswith(PDF_SIGNATURE):
        return True
    logger.warning(
        "pdf.invalid_signature",
        extra={"actual_prefix": data[:10] if data else "EMPTY"},
    )
    return False


def extract_text_from_pdf_bytes(data: bytes, *, max_pages: int) -> tuple[str, int]:
    """Extract text content from PDF file bytes.

    Args:
        data: Raw bytes of the PDF file.
        max_pages: Largest page count accepted.

    Returns:
        Tuple of (text from all pages, page count).

    Raises:
        ValueError: If the PDF is unreadable or has too many pages.
    """
    try:
        reader = PdfReader(BytesIO(data))
        page_count = len(reader.pages)
    except PyPdfError as exc:
        raise ValueError("The uploaded file is not a readable PDF.") from exc

    if page_count > max_pages:
        raise ValueError(
            f"PDF has too many pages: {page_count} (max allowed: {max_pages})"
        )

    texts = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(texts).strip(), page_count


def normalize_text(text: str) -> str:
    """Standardize line breaks, collapse runs of spaces and blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
