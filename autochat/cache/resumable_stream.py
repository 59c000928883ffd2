"""Resumable SSE delivery over Redis Streams.

Each generation run is pumped into the Redis Stream ``{prefix}stream:{id}``.
Readers (the original requester or a reconnecting client) follow the stream
with XREAD from a cursor. Every SSE frame carries the entry id, so a client
reconnecting with ``Last-Event-ID`` continues strictly after the last frame
it received.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

import redis.asyncio as aioredis

from autochat.api.schemas.chat import StreamChunk
from autochat.cache.client import RedisManager

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"
STREAM_START = "0"
_END_FIELD = "end"
_DATA_FIELD = "data"
_REGISTERED_FIELD = "registered"


def sse_frame(data: str, event_id: Optional[str] = None) -> str:
    """Format one SSE frame."""
    if event_id is not None:
        return f"id: {event_id}\ndata: {data}\n\n"
    return f"data: {data}\n\n"


async def encode_chunks(events: AsyncIterator[StreamChunk]) -> AsyncIterator[str]:
    """Direct (non-resumable) SSE encoding of a chunk stream."""
    async for chunk in events:
        yield sse_frame(chunk.model_dump_json())
    yield DONE_FRAME


class ResumableStreamManager:
    """Durable multiplexing of generation streams keyed by stream id.

    Args:
        redis_manager: Connection manager for the backing Redis.
        ttl_seconds: How long a finished stream stays readable.
        block_ms: XREAD block timeout while waiting for new entries.
    """

    def __init__(
        self,
        redis_manager: RedisManager,
        ttl_seconds: int = 600,
        block_ms: int = 5000,
    ) -> None:
        self._redis = redis_manager
        self._ttl_seconds = ttl_seconds
        self._block_ms = block_ms
        self._pumps: dict[str, asyncio.Task] = {}

    def stream_key(self, stream_id: str) -> str:
        return f"{self._redis.key_prefix}stream:{stream_id}"

    async def resumable_stream(
        self,
        stream_id: str,
        make_events: Callable[[], AsyncIterator[StreamChunk]],
    ) -> Optional[AsyncIterator[str]]:
        """
        Register a new stream and return the requester's reader.

        ``make_events`` is only called once Redis is confirmed reachable, so
        a caller that gets None back can still subscribe for direct delivery.

        Args:
            stream_id: StreamHandle id of the run
            make_events: Produces the run's event iterator

        Returns:
            SSE frames read back from Redis, or None when Redis is unavailable
        """
        client = await self._redis.get_client()
        if client is None:
            logger.warning(f"resumable_stream_unavailable: stream_id={stream_id}")
            return None

        key = self.stream_key(stream_id)
        await client.xadd(key, {_REGISTERED_FIELD: "1"})
        await client.expire(key, self._ttl_seconds)

        events = make_events()
        task = asyncio.create_task(self._pump(client, stream_id, events), name=f"pump-{stream_id}")
        self._pumps[stream_id] = task
        task.add_done_callback(lambda _: self._pumps.pop(stream_id, None))
        logger.info(f"resumable_stream_registered: stream_id={stream_id}")
        return self._read(client, stream_id, STREAM_START)

    async def resume_stream(
        self,
        stream_id: str,
        last_event_id: Optional[str] = None,
    ) -> Optional[AsyncIterator[str]]:
        """
        Reattach to an in-flight or recently finished stream.

        Args:
            stream_id: StreamHandle id to resume
            last_event_id: Last SSE id the client received; replay starts after it

        Returns:
            SSE frames after the cursor, or None if the stream is unknown or expired
        """
        client = await self._redis.get_client()
        if client is None:
            return None
        if not await client.exists(self.stream_key(stream_id)):
            logger.info(f"resume_stream_not_found: stream_id={stream_id}")
            return None
        logger.info(f"resume_stream: stream_id={stream_id}, last_event_id={last_event_id}")
        return self._read(client, stream_id, last_event_id or STREAM_START)

    async def wait_for_pump(self, stream_id: str) -> None:
        """Wait until the stream has been fully written to Redis."""
        task = self._pumps.get(stream_id)
        if task is not None:
            await asyncio.shield(task)

    async def _pump(
        self,
        client: aioredis.Redis,
        stream_id: str,
        events: AsyncIterator[StreamChunk],
    ) -> None:
        key = self.stream_key(stream_id)
        count = 0
        try:
            async for chunk in events:
                await client.xadd(key, {_DATA_FIELD: chunk.model_dump_json()})
                count += 1
        except Exception as e:
            logger.error(f"resumable_stream_pump_error: stream_id={stream_id}, error={str(e)}")
        finally:
            try:
                await client.xadd(key, {_END_FIELD: "1"})
                await client.expire(key, self._ttl_seconds)
            except Exception as e:
                logger.warning(f"resumable_stream_close_error: stream_id={stream_id}, error={str(e)}")
            logger.info(f"resumable_stream_complete: stream_id={stream_id}, events={count}")

    async def _read(self, client: aioredis.Redis, stream_id: str, cursor: str) -> AsyncIterator[str]:
        key = self.stream_key(stream_id)
        block: Optional[int] = None
        while True:
            response = await client.xread({key: cursor}, count=100, block=block)
            if not response:
                if not await client.exists(key):
                    logger.warning(f"resumable_stream_expired: stream_id={stream_id}")
                    break
                block = self._block_ms
                continue
            block = None
            for _name, entries in response:
                for entry_id, fields in entries:
                    cursor = entry_id
                    if _END_FIELD in fields:
                        yield DONE_FRAME
                        return
                    if _DATA_FIELD in fields:
                        yield sse_frame(fields[_DATA_FIELD], event_id=entry_id)
        yield DONE_FRAME
