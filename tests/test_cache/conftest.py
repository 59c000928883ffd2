"""Shared fixtures for cache layer tests."""

from typing import AsyncGenerator

import pytest
from fakeredis import FakeAsyncRedis

from autochat.cache.client import RedisManager
from autochat.cache.resumable_stream import ResumableStreamManager


@pytest.fixture
async def fake_redis() -> AsyncGenerator[FakeAsyncRedis, None]:
    """Async fakeredis client for isolated testing.

    Yields:
        A fresh FakeAsyncRedis instance with decode_responses=True.
        Automatically flushed and closed after each test.
    """
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def redis_manager(fake_redis: FakeAsyncRedis) -> RedisManager:
    """RedisManager with injected fakeredis client (bypasses pool creation)."""
    manager = RedisManager(redis_url="redis://fake:6379/0", key_prefix="test:")
    manager._client = fake_redis
    manager._available = True
    return manager


@pytest.fixture
def unavailable_redis_manager() -> RedisManager:
    """RedisManager configured with no Redis URL (always unavailable)."""
    return RedisManager(redis_url=None, key_prefix="test:")


@pytest.fixture
def stream_manager(redis_manager: RedisManager) -> ResumableStreamManager:
    return ResumableStreamManager(redis_manager, ttl_seconds=60, block_ms=50)
