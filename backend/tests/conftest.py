"""
Test configuration and fixtures.
Uses a SQLite file database (aiosqlite) per test and a fake image provider.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_UIDS"] = "admin-uid"
os.environ["MAX_TRANSFORMATIONS"] = "6"
os.environ.pop("GOOGLE_API_KEY", None)
os.environ.pop("FIREBASE_PROJECT_ID", None)

import asyncio
import pytest
from typing import AsyncGenerator, List, Optional
from unittest.mock import patch

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stylizer.ai.base import GeneratedImage, ImageProvider
from stylizer.config import settings
from stylizer.database import build_engine, build_session_factory, init_db


USER_CLAIMS = {
    "valid-token": {
        "uid": "user-123",
        "email": "test@example.com",
        "email_verified": True,
        "name": "Test User",
    },
    "other-token": {
        "uid": "user-456",
        "email": "other@example.com",
        "email_verified": False,
    },
    "admin-token": {
        "uid": "admin-uid",
        "email": "admin@example.com",
        "email_verified": True,
        "name": "Admin",
    },
}

# Minimal PNG signature plus padding; the fake provider never decodes it
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
GENERATED_BYTES = b"\x89PNG\r\n\x1a\n" + b"generated"


class FakeImageProvider(ImageProvider):
    """Provider double that records calls instead of reaching Gemini."""

    name = "fake"

    def __init__(self):
        self.calls: List[dict] = []
        self.delay: float = 0
        self.result: Optional[GeneratedImage] = GeneratedImage(GENERATED_BYTES, "image/png")
        self.error: Optional[Exception] = None

    def is_configured(self) -> bool:
        return True

    async def transform(self, image: bytes, mime_type: str, prompt: str) -> GeneratedImage:
        self.calls.append({"image": image, "mime_type": mime_type, "prompt": prompt})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


async def fake_verify_token(token: str) -> dict:
    if token not in USER_CLAIMS:
        raise ValueError("Token verification failed: invalid signature")
    return dict(USER_CLAIMS[token])


@pytest.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file with tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'usage.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return build_session_factory(engine)


@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch) -> str:
    """Route temporary uploads to a directory the tests can inspect."""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return str(path)


def get_test_app(session_factory: async_sessionmaker, provider: ImageProvider) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from stylizer.main import app
    from stylizer.database import get_db
    from stylizer.ai.factory import get_image_provider

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_provider] = lambda: provider

    return app


@pytest.fixture(scope="function")
async def client(
    session_factory: async_sessionmaker,
    fake_provider: FakeImageProvider,
    upload_dir: str,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(session_factory, fake_provider)

    with patch(
        "stylizer.auth.dependencies.verify_token",
        new=fake_verify_token,
    ):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": "Bearer valid-token"}


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": "Bearer admin-token"}


def _image_upload(
    filename: str = "portrait.png",
    content: bytes = PNG_BYTES,
    content_type: str = "image/png",
) -> dict:
    """Multipart files mapping for httpx."""
    return {"image": (filename, content, content_type)}


@pytest.fixture
def make_upload():
    """Factory for multipart image uploads."""
    return _image_upload
