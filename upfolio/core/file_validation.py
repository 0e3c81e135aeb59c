"""Upload size enforcement."""
from __future__ import annotations

import logging

from fastapi import HTTPException, UploadFile

from upfolio.core.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail=f"File too large. Maximum size: {settings.app.max_upload_size_mb}MB",
    )


async def read_upload_file_limited(file: UploadFile) -> bytes:
    """Read an uploaded file in chunks enforcing the max size limit.

    Uses ``file.size`` from the multipart headers when available, then
    enforces the limit again while reading.

    Raises:
        HTTPException: 413 if the file exceeds the configured size limit.
    """
    max_bytes = settings.app.max_upload_size_mb * 1024 * 1024

    declared = getattr(file, "size", None)
    if declared is not None and declared > max_bytes:
        logger.warning(
            "upload.rejected_by_header",
            extra={"file_size": declared, "max_bytes": max_bytes},
        )
        raise _too_large()

    size = 0
    chunks: list[bytes] = []
    while chunk := await file.read(CHUNK_SIZE):
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "upload.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise _too_large()
        chunks.append(chunk)

    return b"".join(chunks)
