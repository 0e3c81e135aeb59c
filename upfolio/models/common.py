from datetime import datetime, timezone

from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    """Naive UTC timestamp, matching ``timestamp without time zone`` columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """Shared timestamp columns for most tables."""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
