"""
Mosaic Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before the first `mosaic` import, so the
       settings singleton and the engine pick up the test database.

Fixture Hierarchy:
    ├── db_engine: SQLite schema created and dropped per test
    ├── db_session: Session on that schema (service-level tests)
    ├── mock_db_session: AsyncMock session (no database at all)
    ├── upload_root / local_storage: Local backend in a tmp directory
    ├── app / test_client: Fresh application + HTTPX AsyncClient
    ├── auth_headers / other_auth_headers: Registered users' bearer headers
    └── sample_png_bytes / sample_rgba_png_bytes: Pillow-generated images
"""

import io
import os
import tempfile

# Must run before any mosaic import
_TEST_DIR = tempfile.mkdtemp(prefix="mosaic_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["UPLOADS_ROOT"] = os.path.join(_TEST_DIR, "uploads")
os.environ["ENABLE_S3"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from mosaic.database import Base, async_session_factory, engine
from mosaic.main import create_app
from mosaic.models.collection import Collection  # noqa: F401
from mosaic.models.contribution import Contribution  # noqa: F401
from mosaic.models.user import User  # noqa: F401
from mosaic.services.local_storage import LocalStorageBackend


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh schema for each test; the engine is disposed on the test's loop."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def local_storage(upload_root):
    return LocalStorageBackend(root=str(upload_root), chunk_size=1024)


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(local_storage):
    """A new app per test: own storage directory, empty rate-limit window."""
    application = create_app()
    application.state.storage = local_storage
    return application


@pytest_asyncio.fixture
async def test_client(app, db_engine):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register_and_login(client: AsyncClient, email: str, password: str = "secret123") -> dict:
    """Create an account through the API and return its Authorization header."""
    response = await client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def auth_headers(test_client):
    return await register_and_login(test_client, "owner@example.com")


@pytest_asyncio.fixture
async def other_auth_headers(test_client):
    return await register_and_login(test_client, "someone@example.com")


@pytest_asyncio.fixture
async def collection_id(test_client, auth_headers):
    response = await test_client.post(
        "/collections",
        json={"name": "Sunsets", "description": "Evening skies"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


# ══════════════════════════════════════════════════════════════════════════
# Images
# ══════════════════════════════════════════════════════════════════════════

def make_png(size=(640, 480), mode="RGB", color=None) -> bytes:
    """Encode a small test image; the default is a horizontal gradient."""
    if color is not None:
        image = Image.new(mode, size, color)
    else:
        image = Image.linear_gradient("L").resize(size).convert(mode)
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


@pytest.fixture
def sample_png_bytes():
    return make_png()


@pytest.fixture
def sample_rgba_png_bytes():
    """Fully transparent RGBA image."""
    return make_png(size=(300, 500), mode="RGBA", color=(10, 20, 30, 0))
