from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from upfolio.api.deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: DbSession) -> JSONResponse:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service
    health. Reports ``degraded`` with 503 when the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("health.database_unreachable", extra={"error_type": type(exc).__name__})
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})

    return JSONResponse(content={"status": "ok", "database": "ok"})
