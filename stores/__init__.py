"""Persistence layer for game sessions, player profiles and the waiting room.

Callers depend on `GameStore` and the exceptions below; the SQLite
implementation stays private and is reached through the process-wide
singleton managed by `init_stores_async` / `get_game_store`.
"""
import asyncio
from typing import Optional

import config
from infrastructure.notifier import create_notifier

from .game_store import GameStore
from .exceptions import (
    StoreError,
    GameStoreError,
    GameNotFound,
    PlayerNotFound,
    PlayerAlreadyExists,
    InvalidState,
    StaleWrite,
    StoreTimeout,
    UnexpectedResult,
)
from .sqlite_game_store import SqliteGameStore as _SqliteGameStore

__all__ = [
    "GameStore",
    "StoreError",
    "GameStoreError",
    "GameNotFound",
    "PlayerNotFound",
    "PlayerAlreadyExists",
    "InvalidState",
    "StaleWrite",
    "StoreTimeout",
    "UnexpectedResult",
    "init_stores_async",
    "get_game_store",
    "close_stores",
]

game_store: Optional[GameStore] = None


def _build(db_path: str) -> GameStore:
    return _SqliteGameStore(db_path, notifier=create_notifier(config.REDIS_URL))


async def init_stores_async(db_path: str) -> GameStore:
    """Open the singleton from the web app's startup hook."""
    global game_store
    if game_store is None:
        store = _build(db_path)
        await store.init()
        game_store = store
    return game_store


def get_game_store() -> GameStore:
    """Return the singleton, opening it on first use.

    Celery workers and the APScheduler thread have no startup hook, so the
    first call there checks the schema synchronously.
    """
    global game_store
    if game_store is None:
        store = _build(config.DB_PATH)
        asyncio.run(store.init())
        game_store = store
    return game_store


async def close_stores() -> None:
    global game_store
    if game_store is not None:
        await game_store.close()
    game_store = None
