"""Pytest fixtures for backend tests."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.user import User
from app.services.login_guard import AttemptStore, LoginAttemptGuard, get_login_guard

# PostgreSQL in CI (postgresql+asyncpg://...), in-memory SQLite otherwise
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

TEST_PASSWORD = "Secret#123"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def login_guard(clock: FakeClock) -> LoginAttemptGuard:
    """A fresh guard with the default policy (5 failures, 30 minutes)."""
    return LoginAttemptGuard(store=AttemptStore(max_entries=100, clock=clock), clock=clock)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with a clean schema."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_user(test_session: AsyncSession) -> User:
    """Create a test user with TEST_PASSWORD."""
    user = User(
        name="Test User",
        email="test@example.com",
        password_hash=get_password_hash(TEST_PASSWORD),
    )
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def client(
    test_session: AsyncSession, login_guard: LoginAttemptGuard
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client bound to the test session and guard."""

    async def override():
        yield test_session

    app.dependency_overrides[get_db] = override
    app.dependency_overrides[get_login_guard] = lambda: login_guard

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
