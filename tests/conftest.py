"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from uuid import UUID

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.services.asset_cleanup import AssetCleanupQueue
from infrastructure.auth.jwt_provider import JWKSCache, JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import Base
from tests.unit.conftest import FakeAssetStore


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER_ID = UUID("3f2a6c1e-8b4d-4e0a-9c7b-5d1e2f3a4b5c")
TEST_JWT_SECRET = "test-secret-key"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test, one shared connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def test_user() -> TokenUser:
    return TokenUser(id=TEST_USER_ID, email="test@example.com", full_name="Test User")


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """HS256 provider; the empty JWKS URL keeps tests offline."""
    return JWTAuthProvider(
        secret_key=TEST_JWT_SECRET,
        algorithm="HS256",
        expire_minutes=30,
        jwks=JWKSCache(""),
    )


@pytest.fixture
def auth_headers(auth_provider: JWTAuthProvider, test_user: TokenUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_provider.create_token(test_user)}"}


@pytest.fixture
def asset_store() -> FakeAssetStore:
    """In-memory stand-in for the Supabase bucket."""
    return FakeAssetStore()


@pytest.fixture
def cleanup_queue(asset_store: FakeAssetStore) -> AssetCleanupQueue:
    return AssetCleanupQueue(asset_store, timeout_seconds=1.0)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Client against the module-level app, no overrides."""
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def authenticated_client(
    session_factory: async_sessionmaker[AsyncSession],
    test_user: TokenUser,
    auth_provider: JWTAuthProvider,
    asset_store: FakeAssetStore,
    cleanup_queue: AssetCleanupQueue,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Client against a fresh app wired to the test database and bucket.

    Requests are made as ``test_user`` regardless of the Authorization header;
    pending image cleanups are drained on teardown.
    """
    from api.dependencies.auth import get_auth_provider, get_current_user
    from api.dependencies.services import (
        get_cleanup_queue,
        get_image_service,
        get_profile_service,
    )
    from domain.services.image_service import ImageService
    from domain.services.profile_service import ProfileService
    from infrastructure.database.session import get_async_session
    from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
    from main import create_app

    def uow_factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    async def session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    profile_service = ProfileService(uow_factory)
    image_service = ImageService(
        uow_factory,
        asset_store,
        cleanup_queue,
        max_upload_bytes=1024 * 1024,
        remote_timeout_seconds=2.0,
    )

    app = create_app()
    app.dependency_overrides.update(
        {
            get_current_user: lambda: test_user,
            get_auth_provider: lambda: auth_provider,
            get_profile_service: lambda: profile_service,
            get_image_service: lambda: image_service,
            get_cleanup_queue: lambda: cleanup_queue,
            get_async_session: session_override,
        }
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    await cleanup_queue.drain()
    app.dependency_overrides.clear()
