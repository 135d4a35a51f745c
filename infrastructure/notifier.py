"""Session change notifications.

The store calls `publish(game_id)` after every committed write. Listeners
registered with `subscribe` receive the game id and re-read the session
themselves; the notification never carries state.

`LocalSessionNotifier` only reaches listeners in this process.
`RedisSessionNotifier` fans out through Redis pub/sub so API processes and
celery workers see each other's writes. It opens a connection per publish
and per subscription, because celery tasks run each call in a fresh event
loop and a connection cannot outlive its loop.
"""
import asyncio
import logging
from collections import defaultdict
from functools import partial
from typing import Awaitable, Callable, Optional

from .redis import RedisClient

logger = logging.getLogger(__name__)

Listener = Callable[[str], Awaitable[None]]

CHANNEL_PREFIX = "kelime:session:"


def session_channel(game_id: str) -> str:
    return f"{CHANNEL_PREFIX}{game_id}"


class LocalSessionNotifier:

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    async def _dispatch(self, game_id: str) -> None:
        for listener in list(self._listeners.get(game_id, ())):
            try:
                await listener(game_id)
            except Exception:
                logger.error(f"Session listener for {game_id} failed", exc_info=True)

    async def publish(self, game_id: str) -> None:
        await self._dispatch(game_id)

    async def subscribe(self, game_id: str, listener: Listener) -> Callable[[], None]:
        self._listeners[game_id].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(game_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(game_id, None)

        return unsubscribe

    async def close(self) -> None:
        self._listeners.clear()


class RedisSessionNotifier(LocalSessionNotifier):

    def __init__(self, redis_url: str):
        super().__init__()
        self.redis_url = redis_url
        self._tasks: dict[str, asyncio.Task] = {}

    async def publish(self, game_id: str) -> None:
        try:
            async with RedisClient(self.redis_url) as client:
                await client.publish(session_channel(game_id), game_id)
        except Exception:
            # Listeners in this process still hear about the write.
            logger.error(f"Failed to publish change for {game_id}", exc_info=True)
            await self._dispatch(game_id)

    async def _listen(self, game_id: str) -> None:
        async with RedisClient(self.redis_url) as client:
            pubsub = await client.subscribe(session_channel(game_id))
            try:
                async for message in pubsub.listen():
                    if message.get("type") == "message":
                        await self._dispatch(game_id)
            finally:
                await pubsub.aclose()

    def _listener_done(self, game_id: str, task: asyncio.Task) -> None:
        # A dead listener must not block the next subscribe from reconnecting
        if self._tasks.get(game_id) is task:
            self._tasks.pop(game_id)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Redis listener for {game_id} stopped: {exc}", exc_info=exc)

    async def subscribe(self, game_id: str, listener: Listener) -> Callable[[], None]:
        unsubscribe_local = await super().subscribe(game_id, listener)
        if game_id not in self._tasks:
            task = asyncio.create_task(self._listen(game_id))
            task.add_done_callback(partial(self._listener_done, game_id))
            self._tasks[game_id] = task

        def unsubscribe() -> None:
            unsubscribe_local()
            if game_id not in self._listeners:
                task = self._tasks.pop(game_id, None)
                if task is not None:
                    task.cancel()

        return unsubscribe

    async def close(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        await super().close()


def create_notifier(redis_url: str = "") -> LocalSessionNotifier:
    """Redis-backed notifier when `redis_url` is set, in-process otherwise."""
    if redis_url:
        logger.info("Session notifications go through Redis pub/sub")
        return RedisSessionNotifier(redis_url)
    return LocalSessionNotifier()
