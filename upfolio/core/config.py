"""Upfolio configuration, one pydantic-settings section per concern.

Every section reads its own environment prefix (``APP_``, ``LOG_``, ``LLM_``,
``DATABASE_``, ``RATE_LIMIT_``, ``CREDITS_``). Before the sections are built,
``.env.<APP_ENV>`` at the repository root is loaded into the process
environment when present; variables already set always win.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")
KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def env_file_for(app_env: str) -> Path | None:
    """``.env.<app_env>`` under the project root, or None when it is absent."""

    name = app_env if app_env in KNOWN_ENVIRONMENTS else "development"
    path = PROJECT_ROOT / f".env.{name}"
    return path if path.is_file() else None


# Nested BaseSettings do not share an env_file, so populate os.environ once
_env_file = env_file_for(APP_ENV)
if _env_file is not None and not os.getenv("TESTING"):
    load_dotenv(_env_file, override=False)


def _build(settings_cls):
    """Build a nested settings section from the environment.

    Static type checkers treat fields without defaults as required constructor
    arguments, which is not how BaseSettings is populated.
    """

    return settings_cls()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    max_upload_size_mb: int = Field(
        10,
        description="Maximum resume upload size in megabytes",
        ge=1,
    )
    max_pdf_pages: int = Field(
        10,
        description="Maximum number of pages accepted in an uploaded resume PDF",
        ge=1,
    )
    min_resume_chars: int = Field(
        200,
        description="Below this many extracted characters the PDF is flagged as likely image-based",
    )
    resume_preview_chars: int = Field(
        800,
        description="Number of characters to include in upload previews",
    )
    file_extraction_timeout_seconds: float = Field(
        10.0,
        description="Timeout for PDF text extraction",
        gt=0,
    )
    max_resume_chars: int = Field(
        30000,
        description="Maximum resume text length sent to the job assistant",
    )
    max_job_desc_chars: int = Field(
        10000,
        description="Maximum job description length sent to the job assistant",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    Everything is optional so the service starts without AI configured;
    the job assistant reports a typed error until a provider is set.
    """

    provider: str | None = Field(
        None,
        description="LLM provider name (e.g., openai)",
    )
    model: str = Field(
        "gpt-4o",
        description="Model name (e.g., gpt-4o, gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers (required for OpenAI)",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint",
    )
    timeout_seconds: float = Field(
        60.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Relational database configuration."""

    url: str = Field(
        "sqlite:///./upfolio.db",
        description="SQLAlchemy database URL (Postgres in production)",
    )
    echo: bool = Field(False, description="Log emitted SQL statements")

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class RateLimitPolicy(BaseModel):
    """A named fixed-window budget."""

    requests: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    ``policies`` overrides individual entries of the built-in policy table,
    e.g. ``RATE_LIMIT_POLICIES='{"login": {"requests": 10, "window_seconds": 600}}'``.
    """

    enabled: bool = Field(True, description="Enable rate limiting of sensitive endpoints")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    sweep_interval_seconds: int = Field(
        300,
        description="Interval of the background sweep removing expired windows",
        ge=1,
    )
    policies: dict[str, RateLimitPolicy] = Field(default_factory=dict)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class CreditSettings(BaseSettings):
    """Credit ledger pricing and starting balance."""

    starting_balance: int = Field(500, ge=0)
    job_fit_analysis_cost: int = Field(2, ge=1)
    cover_letter_cost: int = Field(10, ge=1)
    tailored_resume_cost: int = Field(20, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="CREDITS_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=lambda: _build(AppSettings))
    log: LogSettings = Field(default_factory=lambda: _build(LogSettings))
    llm: LLMSettings = Field(default_factory=lambda: _build(LLMSettings))
    db: DatabaseSettings = Field(default_factory=lambda: _build(DatabaseSettings))
    rate_limit: RateLimitSettings = Field(default_factory=lambda: _build(RateLimitSettings))
    credits: CreditSettings = Field(default_factory=lambda: _build(CreditSettings))

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
