"""Shared fixtures: temporary SQLite database, API test client and fakes for
the external model and narration services."""

import asyncio
import json
import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any

# Settings are read at import time, so the environment must be ready first.
_TMP_DIR = tempfile.mkdtemp(prefix="storyspark-tests-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/unused.db"
os.environ["AUDIO_CACHE_DIR"] = os.path.join(_TMP_DIR, "audio")
os.environ["GOOGLE_API_KEY"] = "test-google-key"
os.environ["ELEVENLABS_API_KEY"] = "test-elevenlabs-key"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from storyspark.api.deps import get_audio_cache, get_http_client  # noqa: E402
from storyspark.api.main import app as fastapi_app  # noqa: E402
from storyspark.api.middleware.rate_limiting import rate_limiter  # noqa: E402
from storyspark.core.security import hash_password  # noqa: E402
from storyspark.flows.base import get_genai_client  # noqa: E402
from storyspark.models.database import (  # noqa: E402
    close_db,
    create_tables,
    get_session_factory,
    init_db,
)
from storyspark.models.user import User  # noqa: E402
from storyspark.services.audio_cache import AudioCache  # noqa: E402

TEST_PASSWORD = "contraseña-segura"


# =============================================================================
# Fake generative model
# =============================================================================


def text_response(payload: dict[str, Any]) -> SimpleNamespace:
    """A model response whose text is ``payload`` as JSON."""
    return SimpleNamespace(text=json.dumps(payload), candidates=[])


def image_response(data: bytes = b"\x89PNG fake", mime_type: str = "image/png") -> SimpleNamespace:
    """A model response carrying one inline image part."""
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(
        text=None,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
    )


def empty_response() -> SimpleNamespace:
    return SimpleNamespace(text=None, candidates=[])


class FakeModels:
    """Stands in for ``client.aio.models``; replays queued responses in order."""

    def __init__(self) -> None:
        self.responses: list[Any] = []
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def generate_content(self, *, model: str, contents: Any, config: Any = None) -> Any:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if not self.responses:
            return empty_response()
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return await response()
        return response


class FakeGenAIClient:
    def __init__(self) -> None:
        self.models = FakeModels()
        self.aio = SimpleNamespace(models=self.models)


@pytest.fixture
def genai_client() -> FakeGenAIClient:
    return FakeGenAIClient()


# =============================================================================
# Fake narration service
# =============================================================================


class FakeElevenLabs:
    """Records synthesis requests and answers with fixed audio bytes."""

    def __init__(self, audio: bytes = b"ID3 fake mp3", status_code: int = 200) -> None:
        self.audio = audio
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"detail": "error"})
        return httpx.Response(200, content=self.audio, headers={"Content-Type": "audio/mpeg"})


@pytest.fixture
def elevenlabs() -> FakeElevenLabs:
    return FakeElevenLabs()


@pytest.fixture
def audio_cache(tmp_path: Path) -> AudioCache:
    return AudioCache(tmp_path / "audio")


# =============================================================================
# Database
# =============================================================================


def run(coro: Any) -> Any:
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def session_factory(tmp_path: Path) -> Iterator[async_sessionmaker[AsyncSession]]:
    """Application database on a fresh SQLite file with all tables created."""
    init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    run(create_tables())
    yield get_session_factory()
    run(close_db())


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., User]:
    """Insert a user directly, bypassing registration."""

    def _make_user(
        email: str = "ana@example.com",
        password: str = TEST_PASSWORD,
        name: str = "Ana",
        verified: bool = True,
        **fields: Any,
    ) -> User:
        async def create() -> User:
            async with session_factory() as session:
                user = User(
                    email=email,
                    name=name,
                    hashed_password=hash_password(password),
                    is_email_verified=verified,
                    **fields,
                )
                session.add(user)
                await session.commit()
                return user

        return run(create())

    return _make_user


@pytest.fixture
def fetch_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable[[str], User | None]:
    """Load a user by e-mail with a fresh session."""
    from sqlalchemy import select

    def _fetch(email: str) -> User | None:
        async def load() -> User | None:
            async with session_factory() as session:
                result = await session.execute(select(User).where(User.email == email))
                return result.scalar_one_or_none()

        return run(load())

    return _fetch


# =============================================================================
# API
# =============================================================================


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> Iterator[None]:
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def client(
    session_factory: async_sessionmaker[AsyncSession],
    genai_client: FakeGenAIClient,
    elevenlabs: FakeElevenLabs,
    audio_cache: AudioCache,
) -> Iterator[TestClient]:
    """Test client wired to the temporary database and the fakes.

    The lifespan is not entered; the database comes from ``session_factory``.
    """

    async def override_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(elevenlabs.handler)) as http:
            yield http

    fastapi_app.dependency_overrides[get_genai_client] = lambda: genai_client
    fastapi_app.dependency_overrides[get_http_client] = override_http_client
    fastapi_app.dependency_overrides[get_audio_cache] = lambda: audio_cache

    yield TestClient(fastapi_app)

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def login(client: TestClient) -> Callable[..., dict[str, str]]:
    """Log in through the API and return bearer headers."""

    def _login(email: str = "ana@example.com", password: str = TEST_PASSWORD) -> dict[str, str]:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        # Keep the cookie jar clean so each request authenticates explicitly
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def auth_headers(make_user: Callable[..., User], login: Callable[..., dict[str, str]]) -> dict[str, str]:
    make_user()
    return login()
