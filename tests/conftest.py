"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It ensures that the TESTING environment variable is set to prevent
loading the .env file during tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.api.deps import get_llm_client
from upfolio.core.app_factory import create_app
from upfolio.core.rate_limit import set_rate_limiter_registry
from upfolio.db.session import build_engine, get_db, init_db
from upfolio.services.account_service import AccountService

API_KEY = "test-api-key-123"


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    """Every test starts with empty rate limit windows."""
    set_rate_limiter_registry(None)
    yield
    set_rate_limiter_registry(None)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed SQLite database with a real connection pool.

    Each session gets its own connection, so threads using separate sessions
    contend on the database lock the way separate requests do.
    """

    engine = build_engine(
        f"sqlite:///{tmp_path / 'upfolio.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def run_concurrently(file_session_factory):
    """Run ``worker(session)`` in several threads released together.

    Each thread gets its own session. Returns each call's result, or the
    exception it raised.
    """

    def _run(worker, count: int = 2) -> list:
        barrier = threading.Barrier(count)

        def _call():
            session = file_session_factory()
            try:
                barrier.wait()
                return worker(session)
            except Exception as exc:  # noqa: BLE001
                return exc
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=count) as pool:
            futures = [pool.submit(_call) for _ in range(count)]
            return [future.result() for future in futures]

    return _run


@pytest.fixture
def make_account(db):
    """Register accounts directly through the service (bypasses HTTP rate limits)."""

    def _make(username: str, *, is_public: bool = False, balance: int | None = None):
        return AccountService(db, starting_balance=balance).register(username, is_public=is_public)

    return _make


@pytest.fixture
def llm_client() -> AsyncMock:
    return AsyncMock(spec=AbstractLLMClient)


@pytest.fixture
def app(session_factory, llm_client):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_llm_client] = lambda: llm_client
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Build request headers carrying the API key and, optionally, an acting user."""

    def _headers(user_id: int | None = None, **extra: str) -> dict[str, str]:
        headers = {"X-API-Key": API_KEY, **extra}
        if user_id is not None:
            headers["X-User-Id"] = str(user_id)
        return headers

    return _headers
