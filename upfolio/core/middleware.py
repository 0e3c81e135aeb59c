"""Per-request correlation: request id, access log line, timing header.

Registered in the app factory with ``app.middleware("http")(request_id_middleware)``.
The acting user id is bound later by the auth dependencies; both values are
dropped from the logging context when the request finishes.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from upfolio.core.config import settings
from upfolio.core.logging import clear_request_id, clear_user_id, set_request_id

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(request: Request) -> str:
    """Reuse the caller's correlation id when it is sane, otherwise mint one."""

    incoming = (request.headers.get(settings.log.request_id_header) or "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    request_id = resolve_request_id(request)
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
    finally:
        clear_request_id()
        clear_user_id()

    response.headers[settings.log.request_id_header] = request_id
    response.headers["X-Request-Duration-ms"] = f"{elapsed_ms:.2f}"
    return response
