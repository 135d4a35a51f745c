from typing import Optional

import redis.asyncio as redis


class RedisClient:
    """Short-lived async Redis connection used for session pub/sub.

    Usage:
        async with RedisClient("redis://localhost:6379/0") as client:
            await client.publish("kelime:session:abc", "abc")
    """

    def __init__(self, url: str, *, decode_responses: bool = True):
        self.url = url
        self.decode_responses = decode_responses
        self._conn: Optional[redis.Redis] = None

    @property
    def conn(self) -> redis.Redis:
        if self._conn is None:
            raise RuntimeError(f"Redis connection to {self.url} is not open")
        return self._conn

    async def open(self) -> "RedisClient":
        """Connect and ping, so an unreachable server fails here and not on first use."""
        if self._conn is None:
            conn = redis.from_url(self.url, decode_responses=self.decode_responses)
            try:
                await conn.ping()
            except Exception:
                await conn.aclose()
                raise
            self._conn = conn
        return self

    async def aclose(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.aclose()

    async def __aenter__(self) -> "RedisClient":
        return await self.open()

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def publish(self, channel: str, message: str) -> int:
        return await self.conn.publish(channel, message)

    async def subscribe(self, *channels: str):
        """PubSub already listening on `channels`; the caller must `aclose()` it."""
        pubsub = self.conn.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(*channels)
        return pubsub
