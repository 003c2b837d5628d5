"""Service test fixtures: async DB, in-memory stores, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - The client fixture populates app.state through configure_state, exactly like the
      lifespan does (ASGITransport never runs the lifespan)
    - get_settings overridden so routes read the test Settings, not the process env

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (ADR: PostgreSQL-specific features are not used by the stores)
    - Memory stores for race tests: SQLite serializes writers, asyncio.gather on the
      memory stores interleaves lookups the same way separate requests would
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from rebuzzle.config import Settings, get_settings
from rebuzzle.core.ip_hasher import IpHasher
from rebuzzle.db.base import Base
from rebuzzle.infrastructure.database import DatabaseSessionManager
from rebuzzle.infrastructure.memory_stores import (
    MemoryAttemptStore, MemoryStatsStore, MemoryUserStore,
)
from rebuzzle.infrastructure.session_tokens import SessionTokenIssuer
from rebuzzle.main import app, configure_state
import rebuzzle.models.user  # noqa: F401
import rebuzzle.models.user_stats  # noqa: F401
import rebuzzle.models.daily_attempt  # noqa: F401


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def user_store():
    return MemoryUserStore()


@pytest.fixture
def stats_store():
    return MemoryStatsStore()


@pytest.fixture
def attempt_store():
    return MemoryAttemptStore()


@pytest.fixture
def ip_hasher():
    return IpHasher("test-salt")


@pytest.fixture
def token_issuer():
    return SessionTokenIssuer("test-session-secret", 3600)


@pytest.fixture
def app_settings():
    return Settings(
        environment="development",
        database_url="sqlite+aiosqlite:///:memory:",
        ip_hash_salt="test-salt",
        session_secret="test-session-secret",
        semantic_validation_enabled=False,
    )


@pytest.fixture
async def client(test_engine, app_settings):
    """FastAPI test client wired to the in-memory database."""
    configure_state(app, app_settings, DatabaseSessionManager(test_engine))
    app.dependency_overrides[get_settings] = lambda: app_settings

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
