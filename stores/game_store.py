from typing import Awaitable, Callable, Optional
from datetime import datetime
from abc import ABC, abstractmethod

from models.domain_models import GameSession, MatchQueueEntry, UserProfile


SessionMutator = Callable[[GameSession], GameSession]
SessionBuilder = Callable[[str, str, str], GameSession]
SessionListener = Callable[[str], Awaitable[None]]


# =========================
# GameStore Interface
# =========================

class GameStore(ABC):
    """
    The GameStore is the sole authority over game state.

    Invariants:
    - Every session mutation is a compare-and-update on `version`
    - A queue entry is claimed by at most one match
    - Finishing a game updates both players' profiles in the same transaction
    - All concurrency control lives here
    """

    # -------------------------------------------------
    # Sessions
    # -------------------------------------------------

    @abstractmethod
    async def create_session(self, session: GameSession) -> GameSession:
        """Persist a brand-new session.

        Raises:
            UnexpectedResult: If a session with the same id already exists.
        """

    @abstractmethod
    async def read_session(self, game_id: str) -> GameSession:
        """Return the current session.

        Raises:
            GameNotFound: If the game does not exist.
            InvalidState: If the stored document cannot be migrated.
        """

    @abstractmethod
    async def write_session(
        self,
        game_id: str,
        partial: dict,
        *,
        expected_version: Optional[int] = None,
    ) -> GameSession:
        """Merge `partial` (field name -> value) into the stored session.

        With `expected_version` the write only lands if the stored version
        still matches. Returns the session as written.

        Raises:
            GameNotFound: If the game does not exist.
            StaleWrite: If `expected_version` no longer matches.
            InvalidState: If the merged document fails validation.
        """

    @abstractmethod
    async def update_session(self, game_id: str, mutate: SessionMutator) -> GameSession:
        """Atomically read, transform and write one session.

        `mutate` receives the stored session and returns its replacement;
        anything it raises aborts the transaction unchanged.

        Raises:
            GameNotFound: If the game does not exist.
        """

    @abstractmethod
    async def subscribe_session(self, game_id: str, on_change: SessionListener) -> Callable[[], None]:
        """Call `on_change(game_id)` after every committed write. Returns an unsubscribe callable."""

    @abstractmethod
    async def list_sessions_for_player(self, uid: str, *, active_only: bool = False) -> list[GameSession]:
        """Sessions `uid` plays in, newest first."""

    @abstractmethod
    async def list_expired_sessions(self, now: datetime) -> list[str]:
        """Ids of active sessions whose clock ran out before `now`."""

    @abstractmethod
    async def delete_finished_sessions(self, older_than_days: int = 30) -> int:
        """Delete finished sessions last updated more than `older_than_days` ago."""

    # -------------------------------------------------
    # Players
    # -------------------------------------------------

    @abstractmethod
    async def create_user_profile(self, uid: str, username: str) -> UserProfile:
        """
        Raises:
            PlayerAlreadyExists: If `uid` already has a profile.
        """

    @abstractmethod
    async def read_user_profile(self, uid: str) -> UserProfile:
        """
        Raises:
            PlayerNotFound: If `uid` has no profile.
        """

    @abstractmethod
    async def write_user_profile(self, uid: str, partial: dict) -> UserProfile:
        """Merge `partial` into the stored profile.

        Raises:
            PlayerNotFound: If `uid` has no profile.
        """

    # -------------------------------------------------
    # Match queue
    # -------------------------------------------------

    @abstractmethod
    async def enqueue_match(self, duration_class: str, uid: str) -> str:
        """Append `uid` to the queue for `duration_class`. Returns the entry id."""

    @abstractmethod
    async def dequeue_oldest_match(self, duration_class: str) -> Optional[MatchQueueEntry]:
        """Oldest waiting entry for `duration_class` (not removed), or None."""

    @abstractmethod
    async def delete_match_entry(self, entry_id: str) -> None:
        """Remove a queue entry. Missing entries are ignored."""

    @abstractmethod
    async def find_or_create_match(
        self,
        requester: str,
        duration_class: str,
        build_session: SessionBuilder,
    ) -> Optional[GameSession]:
        """Pair `requester` with the oldest waiting player or enqueue them.

        Runs as one transaction: the claimed entry is deleted and the session
        created together. `build_session(waiting, requester, duration_class)`
        builds the new session. Returns None when the requester was queued.
        """

    @abstractmethod
    async def cancel_match(self, requester: str, duration_class: Optional[str] = None) -> int:
        """Remove `requester`'s waiting entries. Returns how many were removed."""

    @abstractmethod
    async def purge_stale_queue_entries(self, max_age_seconds: int) -> int:
        """Drop queue entries older than `max_age_seconds`."""
