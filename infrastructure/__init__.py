"""Redis connection wrapper and the session-change notifiers built on it."""
from .redis import RedisClient
from .notifier import (
    LocalSessionNotifier,
    RedisSessionNotifier,
    session_channel,
    create_notifier,
)

__all__ = [
    "RedisClient",
    "LocalSessionNotifier",
    "RedisSessionNotifier",
    "session_channel",
    "create_notifier",
]
