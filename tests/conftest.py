"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("S2S_DOCUMENT_BACKEND", "memory")
os.environ.setdefault("S2S_LOG_FORMAT", "console")

from s2s.catalog.grid import GridIndex  # noqa: E402
from s2s.catalog.service import GridCache, get_grid_cache  # noqa: E402
from s2s.config import get_settings  # noqa: E402
from s2s.database import get_session  # noqa: E402
from s2s.db import models  # noqa: E402, F401
from s2s.db.base import Base  # noqa: E402
from s2s.documents import MemoryDocumentStore  # noqa: E402
from s2s.gamification.engine import AchievementEngine  # noqa: E402
from s2s.gamification.session_tracker import SessionTracker  # noqa: E402
from s2s.progress.service import ProgressTracker  # noqa: E402
from s2s.redis_client import get_document_store  # noqa: E402
from s2s.sessions import SessionRegistry, get_session_registry  # noqa: E402
from s2s.users.service import ProfileService  # noqa: E402
from tests.helpers import PUBLIC_PEM, build_grid, static_cache  # noqa: E402


def _ensure_test_keys() -> str:
    """Write the test verification key and point settings at it."""
    tmpdir = tempfile.mkdtemp(prefix="s2s_test_keys_")
    public_path = os.path.join(tmpdir, "auth_public.pem")
    with open(public_path, "w") as f:
        f.write(PUBLIC_PEM)

    os.environ["S2S_JWT_PUBLIC_KEY_PATH"] = public_path
    get_settings.cache_clear()
    from s2s.auth.jwt import reset_keys

    reset_keys()
    return public_path


@pytest.fixture(scope="session", autouse=True)
def _test_keys() -> str:
    return _ensure_test_keys()


# --- Catalog ---


@pytest.fixture
def grid() -> GridIndex:
    """math: levels 1-3, art: levels 1-2, three global levels."""
    return build_grid({"math": [1, 2, 3], "art": [1, 2]}, levels=3)


@pytest.fixture
def grid_cache(grid: GridIndex) -> GridCache:
    return static_cache(grid)


# --- Documents and services ---


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def profiles(store: MemoryDocumentStore) -> ProfileService:
    return ProfileService(store)


@pytest.fixture
def engine(profiles: ProfileService) -> AchievementEngine:
    return AchievementEngine(profiles)


@pytest.fixture
def tracker(profiles: ProfileService) -> SessionTracker:
    return SessionTracker(profiles, timezone.utc)


@pytest.fixture
def progress(profiles: ProfileService, grid_cache: GridCache) -> ProgressTracker:
    return ProgressTracker(profiles, grid_cache)


# --- Database ---


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """In-memory SQLite catalog with the ORM schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


# --- HTTP ---


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest_asyncio.fixture
async def app(
    store: MemoryDocumentStore,
    grid_cache: GridCache,
    registry: SessionRegistry,
    db_session: AsyncSession,
) -> FastAPI:
    """The application with in-memory backends wired in."""
    from s2s.main import create_app

    application = create_app()

    async def _db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application.dependency_overrides[get_document_store] = lambda: store
    application.dependency_overrides[get_grid_cache] = lambda: grid_cache
    application.dependency_overrides[get_session_registry] = lambda: registry
    application.dependency_overrides[get_session] = _db
    await grid_cache.get()
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
