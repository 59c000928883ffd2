"""Redis-backed durable delivery for chat streams."""

from autochat.cache.client import RedisManager
from autochat.cache.resumable_stream import ResumableStreamManager

__all__ = [
    "RedisManager",
    "ResumableStreamManager",
]
