"""
NoteKeeper Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the whole suite.
How:   The environment is pointed at an in-memory SQLite database and a
       throwaway storage root BEFORE any notekeeper module is imported, so
       the settings singleton and the engine are built for tests.

Fixture Hierarchy (all function-scoped):
    ├── database:        creates the schema, drops it and disposes the engine after
    │   ├── db_session:  AsyncSession for service-level tests
    │   │   ├── user / other_user: persisted accounts
    │   └── test_client: httpx AsyncClient over ASGITransport
    ├── fake_storage:    in-memory ObjectStorageGateway with scripted failures
    └── temp_storage:    temporary directory for the local storage backend
"""

import asyncio
import os
import tempfile
from typing import AsyncGenerator, Dict, List, Optional, Set

# Must run before notekeeper.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="notekeeper_test_")
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from notekeeper.database import (  # noqa: E402
    Base,
    async_session_factory,
    create_all_tables,
    dispose_engine,
    engine,
)
from notekeeper.services.credential_store import credential_store  # noqa: E402
from notekeeper.services.storage_base import ObjectStorageGateway, UploadSuccess  # noqa: E402

PASSWORD = "secret123"


class FakeStorageGateway(ObjectStorageGateway):
    """
    In-memory gateway.

    Handles are "<folder>/<content>", so tests can tell which input an
    attachment came from. Failures and delays are scripted per content.
    """

    name = "fake"

    def __init__(self, timeout_seconds: float = 2.0):
        super().__init__(timeout_seconds=timeout_seconds)
        self.objects: Dict[str, bytes] = {}
        self.failing_uploads: Set[bytes] = set()
        self.upload_delays: Dict[bytes, float] = {}
        self.fail_deletes = False
        self.upload_calls: List[bytes] = []
        self.delete_calls: List[str] = []

    async def _upload(self, content: bytes, folder: str, content_type: Optional[str]) -> UploadSuccess:
        self.upload_calls.append(content)
        delay = self.upload_delays.get(content)
        if delay:
            await asyncio.sleep(delay)
        if content in self.failing_uploads:
            raise RuntimeError("simulated upload failure")
        handle = f"{folder}/{content.decode('latin-1')}"
        self.objects[handle] = content
        return UploadSuccess(url=f"https://cdn.test/{handle}", handle=handle)

    async def _delete(self, handle: str) -> None:
        self.delete_calls.append(handle)
        if self.fail_deletes:
            raise RuntimeError("simulated delete failure")
        if handle not in self.objects:
            raise KeyError(handle)
        del self.objects[handle]


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    await create_all_tables()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await dispose_engine()


@pytest_asyncio.fixture
async def db_session(database):
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def user(db_session):
    return await credential_store.create_user(
        db_session, first_name="Ada", last_name="Lovelace", email="ada@example.com", password=PASSWORD,
    )


@pytest_asyncio.fixture
async def other_user(db_session):
    return await credential_store.create_user(
        db_session, first_name="Grace", last_name="Hopper", email="grace@example.com", password=PASSWORD,
    )


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def fake_storage() -> FakeStorageGateway:
    return FakeStorageGateway()


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def test_client(database, fake_storage):
    """
    AsyncClient bound to the app, with the storage gateway replaced by
    `fake_storage`.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from notekeeper.dependencies import get_storage_gateway
    from notekeeper.main import app

    app.dependency_overrides[get_storage_gateway] = lambda: fake_storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def register(client: AsyncClient, email: str = "ada@example.com", password: str = PASSWORD) -> Dict:
    response = await client.post(
        "/api/auth/register",
        json={"first_name": "Ada", "last_name": "Lovelace", "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
