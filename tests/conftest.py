"""Shared fixtures: a temporary SQLite database, auth tokens and a Gemini stub."""

import os
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

TEST_JWT_SECRET = "test-jwt-secret"

# Settings are cached on first use, so the environment must be ready before
# anything under app/ is imported.
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["SUPABASE_JWT_AUDIENCE"] = "authenticated"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["DEV_AUTH_BYPASS"] = "false"
os.environ["FEATURE_LIMITS_SOURCE"] = "static"

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.config import get_settings
from app.database import Base, get_db
from app.deps import get_feature_limits, get_gemini_client
from app.main import app
from app.services.gemini import GeminiClient
from app.services.limits import DEFAULT_FEATURE_LIMITS, StaticFeatureLimits


# --- Tokens ---

def make_token(
    user_id: UUID,
    email: str | None = "user@example.com",
    secret: str = TEST_JWT_SECRET,
    expires_in: timedelta = timedelta(hours=1),
    audience: str = "authenticated",
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "aud": audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id: UUID, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}


# --- Gemini stub ---

def gemini_payload(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class GeminiStub:
    """Queue of canned Gemini answers served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.responses: list = []
        self.requests: list[httpx.Request] = []

    def reply(self, text: str) -> None:
        self.responses.append(httpx.Response(200, json=gemini_payload(text)))

    def fail(self, status_code: int, body: str = "upstream error") -> None:
        self.responses.append(httpx.Response(status_code, text=body))

    def timeout(self) -> None:
        self.responses.append("timeout")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(500, text="no stubbed response")
        response = self.responses.pop(0)
        if response == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        return response

    def client(self) -> GeminiClient:
        return GeminiClient(settings=get_settings(), transport=httpx.MockTransport(self.handler))


# --- Database ---

@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def sync_engine(db_url):
    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine, db_url) -> async_sessionmaker[AsyncSession]:
    """Async sessions on the same file the sync engine seeded."""
    engine = create_async_engine(db_url.replace("sqlite://", "sqlite+aiosqlite://", 1), poolclass=NullPool)
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def seed(sync_engine):
    """Insert ORM objects synchronously and return them."""

    def _seed(*objects):
        with Session(sync_engine, expire_on_commit=False) as session:
            session.add_all(objects)
            session.commit()
        return objects

    return _seed


@pytest.fixture
def query(sync_engine):
    """Run a SELECT synchronously and return the ORM results."""

    def _query(statement):
        with Session(sync_engine, expire_on_commit=False) as session:
            return list(session.execute(statement).scalars().all())

    return _query


# --- App ---

@pytest.fixture
def gemini() -> GeminiStub:
    return GeminiStub()


@pytest.fixture
def static_limits() -> dict:
    """Mutable copy of the default limits table; tests may edit it before calling."""
    return dict(DEFAULT_FEATURE_LIMITS)


@pytest.fixture
def client(session_factory, gemini, static_limits):
    """FastAPI test client wired to the temporary database and the Gemini stub."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_feature_limits] = lambda: StaticFeatureLimits(static_limits)
    app.dependency_overrides[get_gemini_client] = gemini.client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def headers(user_id) -> dict[str, str]:
    return auth_headers(user_id)
