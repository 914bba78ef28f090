import os

# Must be set before the application modules read their settings
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from io import BytesIO
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from photoshare.main import app
from photoshare.db.session import get_db
from photoshare.models import Base
from photoshare.models.user import User, UserRole
from photoshare.utils.file_upload import ImageStore, get_image_store

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "Password123"
API = "/api"


def make_image(fmt: str = "PNG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    """Small generated image for upload tests"""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def image_store(tmp_path) -> ImageStore:
    return ImageStore(upload_dir=str(tmp_path / "uploads"), url_prefix="/uploads")


@pytest.fixture
async def test_client(session_factory, image_store) -> AsyncGenerator[AsyncClient, None]:
    """Client wired to the per-test database and upload directory"""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: image_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def register(test_client):
    """Register a user; returns (user, auth headers)"""

    async def _register(username: str = "alice", email: str = None, password: str = PASSWORD):
        response = await test_client.post(f"{API}/auth/register", json={
            "username": username,
            "email": email or f"{username.lower()}@example.com",
            "password": password,
        })
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def create_post(test_client):
    """Upload a post as the given caller; returns the post payload"""

    async def _create_post(headers, caption: str = "", image: bytes = None):
        response = await test_client.post(
            f"{API}/posts",
            data={"caption": caption},
            files={"image": ("photo.png", image or make_image(), "image/png")},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]["post"]

    return _create_post


@pytest.fixture
def make_admin(session_factory):
    """Promote an existing user to administrator directly in the database"""

    async def _make_admin(user_id: int):
        async with session_factory() as session:
            await session.execute(update(User).where(User.id == user_id).values(role=UserRole.ADMIN))
            await session.commit()

    return _make_admin


@pytest.fixture
def fetch(session_factory):
    """Load a row in a fresh session, bypassing any identity map"""

    async def _fetch(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)

    return _fetch
