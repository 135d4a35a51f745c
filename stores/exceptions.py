"""
Errors raised by the game store.

`retryable` tells the worker layer whether running the same call again
could succeed (lock contention, a lost version race) or never will
(missing rows, unreadable documents).

StoreError
  GameNotFound, PlayerNotFound, StoreTimeout, UnexpectedResult
  GameStoreError
    StaleWrite, PlayerAlreadyExists, InvalidState
"""


class StoreError(Exception):
    retryable: bool = True


class GameNotFound(StoreError):
    """No session row carries the requested id."""
    retryable = False


class PlayerNotFound(StoreError):
    retryable = False


class UnexpectedResult(StoreError):
    # Only reachable if sqlite itself misbehaves, e.g. a duplicate primary key
    # after a fresh uuid.
    retryable = True


class StoreTimeout(StoreError):
    """The database stayed locked past the configured timeout."""
    retryable = True


class GameStoreError(StoreError):
    retryable = True


class StaleWrite(GameStoreError):
    """`expected_version` no longer matches the stored session."""
    retryable = True


class PlayerAlreadyExists(GameStoreError):
    retryable = False


class InvalidState(GameStoreError):
    """A stored or merged session document does not validate."""
    retryable = False
