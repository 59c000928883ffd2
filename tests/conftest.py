"""Shared fixtures for the autochat test suite."""

import os
from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# Settings are loaded at app creation; give them what they require.
os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-unit-tests")

from autochat.db.base import Base  # noqa: E402
from autochat.settings import FeatureFlags, Settings  # noqa: E402

# Force all models to register with Base.metadata
import autochat.db.models  # noqa: E402, F401


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: no database, no Redis, no title model calls."""
    return Settings(
        llm_api_key="test-key",
        jwt_secret_key="test-secret-key-for-unit-tests",
        automation_api_url="http://automation.test",
        automation_agent_name="webAutomationAgent",
        request_timeout_seconds=10.0,
        feature_flags=FeatureFlags(enable_resumable_streams=False, enable_title_generation=False),
    )


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created.

    A file (not ``:memory:``) lets the request session and the generation
    producer hold separate connections.
    """
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'autochat.db'}")

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        # ON DELETE CASCADE needs enforcement switched on per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting rows directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client; requests are intercepted with respx where needed."""
    client = httpx.AsyncClient()
    yield client
    await client.aclose()
