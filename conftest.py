import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dotenv import load_dotenv

# Optional local overrides (e.g. a Chapa sandbox key) for test runs
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Test settings must be in place before anything reads get_settings()
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CHAPA_SECRET_KEY", "CHASECK_TEST-key")
os.environ.setdefault("CHAPA_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("CALLBACK_URL", "http://testserver")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the env vars above
get_settings.cache_clear()
settings = get_settings()

from libs.db.base import Base  # noqa: E402
from services.marketplace_service import models as _marketplace_models  # noqa: E402,F401
from services.marketplace_service.app.main import app  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single in-memory connection alive across sessions.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def fake_gateway():
    from tests.conftest import FakeGateway

    return FakeGateway()


@pytest_asyncio.fixture
async def client(db_session, fake_gateway) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the app with the DB and the payment
    gateway overridden. Auth is overridden per test with ``override_auth``.
    """
    from libs.db.session import get_async_db
    from services.marketplace_service.dependencies import get_payment_gateway

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
