"""Logging utilities with JSON formatting, redaction, and request correlation.

This module centralizes logging configuration, including:
- Per-request context (request_id, acting user_id) carried in contextvars
- Redaction of credentials and resume/job content on log records
- Hashing of identifiers (rate limit keys, usernames) so they correlate
  across lines without being readable
- JSON formatter for machine-friendly logs, stdout or rotating file output
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from upfolio.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_user_id_var: ContextVar[int | None] = ContextVar("user_id", default=None)

# Values replaced entirely
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "api_key",
    "x-api-key",
    "authorization",
    "cookie",
    "set-cookie",
    "token",
    "reset_token",
    "verification_token",
    "secret",
    "password",
    "password_hash",
    "llm_api_key",
    "app_api_keys",
    "base_url",
    "content",
    "resume_text",
    "resume_data",
    "job_description",
    "prompt",
    "completion",
}

# Values replaced by a short digest
HASHED_KEYS_DEFAULT: set[str] = {"identifier", "username", "email", "client_ip"}

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    """Bind a correlation id to every log emitted in the current context."""

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def set_user_id(user_id: int | None) -> None:
    """Bind the acting user id to subsequent logs of this request."""

    _user_id_var.set(user_id)


def get_user_id() -> int | None:
    return _user_id_var.get()


def clear_user_id() -> None:
    _user_id_var.set(None)


def hash_identifier(value: str) -> str:
    """Short, stable digest used to log identifiers without exposing them."""

    return hashlib.sha256(value.encode()).hexdigest()[:16]


class Redactor:
    """Scrubs structured log extras.

    Keys are matched case-insensitively at any nesting depth inside dicts,
    lists and tuples.
    """

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        hashed_keys: Iterable[str] | None = None,
    ) -> None:
        self.sensitive_keys = {k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)}
        self.hashed_keys = {k.lower() for k in (hashed_keys or HASHED_KEYS_DEFAULT)}

    def scrub_field(self, key: str, value: Any) -> Any:
        lowered = str(key).lower()
        if lowered in self.sensitive_keys:
            return REDACTED
        if lowered in self.hashed_keys and value is not None:
            return hash_identifier(str(value))
        return self.scrub_value(value)

    def scrub_value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.scrub_field(k, v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.scrub_value(v) for v in value)
        return value

    def extras(self, record: LogRecord, *, scrub: bool = True) -> dict[str, Any]:
        """User-supplied extras of ``record``, scrubbed unless ``scrub`` is False."""

        return {
            key: self.scrub_field(key, value) if scrub else value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class RequestContextFilter(logging.Filter):
    """Attach request_id and user_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        if getattr(record, "user_id", None) is None:
            record.user_id = get_user_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub extras in place so every formatter downstream sees clean values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if not getattr(record, "_scrubbed", False):
            for key, value in self.redactor.extras(record).items():
                setattr(record, key, value)
            record._scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: fixed envelope first, then the extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = self.redactor.extras(record, scrub=not getattr(record, "_scrubbed", False))
        request_id = extras.pop("request_id", None) or get_request_id()
        user_id = extras.pop("user_id", None)
        if user_id is None:
            user_id = get_user_id()
        if request_id:
            payload["request_id"] = request_id
        if user_id is not None:
            payload["user_id"] = user_id
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/upfolio.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the single root handler (context, redaction, JSON or plain).

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Uvicorn installs its own handlers; keep its lines from being emitted twice
    for name in ("uvicorn", "uvicorn.access"):
        logging.getLogger(name).propagate = False
