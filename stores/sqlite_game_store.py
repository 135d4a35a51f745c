import json
import logging
import sqlite3
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

import aiosqlite
from pydantic import ValidationError

import config
from db import connect, ensure_db
from engine.match_finder import pick_opponent
from models.domain_models import GameSession, MatchQueueEntry, SessionStatus, UserProfile
from utils import ensure_utc, now_utc
from .exceptions import (
    GameNotFound,
    InvalidState,
    PlayerAlreadyExists,
    PlayerNotFound,
    StaleWrite,
    StoreTimeout,
    UnexpectedResult,
)
from .game_store import GameStore, SessionBuilder, SessionListener, SessionMutator
from .migrations import load_session

logger = logging.getLogger(__name__)

_SESSION_ALIASES = {
    name: (field.alias or name) for name, field in GameSession.model_fields.items()
}
_PROFILE_COLUMNS = {
    "username": "username",
    "total_games": "total_games",
    "totalGames": "total_games",
    "won_games": "won_games",
    "wonGames": "won_games",
}


def _ts(dt: datetime) -> str:
    """Fixed-width UTC timestamp; sorts lexically in time order."""
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _from_ts(s: str) -> datetime:
    return ensure_utc(datetime.strptime(s, "%Y-%m-%dT%H:%M:%S.%fZ"))


def _deadline(session: GameSession) -> str:
    return _ts(session.start_time + timedelta(seconds=session.duration_seconds))


def _document(session: GameSession) -> str:
    return json.dumps(session.model_dump(by_alias=True, mode="json"), ensure_ascii=False)


def _is_lock_error(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return "locked" in message or "busy" in message


class SqliteGameStore(GameStore):

    def __init__(self, db_path: str, *, timeout: float = None, notifier=None):
        self.db_path = db_path
        self.timeout = config.STORE_TIMEOUT_SECONDS if timeout is None else timeout
        self.notifier = notifier
        logger.info(f"[STORE] SqliteGameStore initialized with db_path: {db_path}")

    async def init(self):
        """Create the schema if needed and verify the database. Call this after construction."""
        await ensure_db(self.db_path)
        async with self._read() as conn:
            async with conn.execute("SELECT name FROM sqlite_master WHERE type='table'") as cursor:
                tables = await cursor.fetchall()
        if not tables:
            logger.error("[STORE] ✗ No tables found! Database may be empty or corrupted")
            raise RuntimeError(f"Database at {self.db_path} has no tables - initialization may have failed")
        logger.info(f"[STORE] Database has {len(tables)} tables: {[t[0] for t in tables]}")

    async def close(self):
        """Connections are opened per operation; only the notifier holds resources."""
        if self.notifier is not None:
            await self.notifier.close()

    # -------------------------------------------------
    # Connection handling
    # -------------------------------------------------

    @asynccontextmanager
    async def _read(self):
        try:
            conn = await connect(self.db_path, timeout=self.timeout)
        except sqlite3.OperationalError as exc:
            raise StoreTimeout(f"Could not open {self.db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.OperationalError as exc:
            if _is_lock_error(exc):
                raise StoreTimeout(str(exc)) from exc
            raise UnexpectedResult(str(exc)) from exc
        finally:
            await conn.close()

    @asynccontextmanager
    async def _transaction(self):
        """One `BEGIN IMMEDIATE` transaction on a dedicated connection.

        Commits when the block exits cleanly, rolls back on any exception.
        Lock waits longer than `self.timeout` surface as StoreTimeout; other
        sqlite errors as UnexpectedResult.
        """
        conn = await connect(self.db_path, timeout=self.timeout, autocommit=True)
        try:
            await conn.execute("BEGIN IMMEDIATE")
            yield conn
            await conn.execute("COMMIT")
        except sqlite3.OperationalError as exc:
            await self._rollback(conn)
            if _is_lock_error(exc):
                logger.warning(f"[STORE] Database locked past {self.timeout}s: {exc}")
                raise StoreTimeout(str(exc)) from exc
            raise UnexpectedResult(str(exc)) from exc
        except sqlite3.Error as exc:
            await self._rollback(conn)
            raise UnexpectedResult(str(exc)) from exc
        except BaseException:
            await self._rollback(conn)
            raise
        finally:
            await conn.close()

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        if conn.in_transaction:
            await conn.execute("ROLLBACK")

    async def _publish(self, game_id: str) -> None:
        if self.notifier is not None:
            await self.notifier.publish(game_id)

    # -------------------------------------------------
    # Session rows
    # -------------------------------------------------

    @staticmethod
    def _row_to_session(row) -> GameSession:
        try:
            doc = json.loads(row["document"])
            doc["id"] = row["game_id"]
            doc["version"] = row["version"]
            return load_session(doc)
        except (KeyError, ValueError, ValidationError) as exc:
            raise InvalidState(f"Stored session {row['game_id']} is unreadable: {exc}") from exc

    async def _fetch_session(self, conn, game_id: str) -> GameSession:
        cur = await conn.execute(
            "SELECT game_id, version, document FROM game_sessions WHERE game_id = ?",
            (game_id,),
        )
        row = await cur.fetchone()
        if row is None:
            raise GameNotFound(game_id)
        return self._row_to_session(row)

    async def _insert_session(self, conn, session: GameSession) -> None:
        now = now_utc()
        session.updated_at = now
        try:
            await conn.execute(
                """
                INSERT INTO game_sessions (
                    game_id, player1, player2, status, version, deadline, created_at, updated_at, document
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.player1,
                    session.player2,
                    session.status.value,
                    session.version,
                    _deadline(session),
                    _ts(session.created_at),
                    _ts(now),
                    _document(session),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise UnexpectedResult(f"Session {session.id} already exists") from exc

    async def _store_session(self, conn, session: GameSession, expected_version: int) -> GameSession:
        """Compare-and-update one row. Bumps `version` on the returned copy."""
        stored = session.model_copy(update={"version": expected_version + 1, "updated_at": now_utc()})
        cur = await conn.execute(
            """
            UPDATE game_sessions
            SET status = ?, version = ?, deadline = ?, updated_at = ?, document = ?
            WHERE game_id = ? AND version = ?
            """,
            (
                stored.status.value,
                stored.version,
                _deadline(stored),
                _ts(stored.updated_at),
                _document(stored),
                stored.id,
                expected_version,
            ),
        )
        if cur.rowcount == 0:
            check = await conn.execute("SELECT 1 FROM game_sessions WHERE game_id = ?", (stored.id,))
            if await check.fetchone() is None:
                raise GameNotFound(stored.id)
            raise StaleWrite(f"Session {stored.id} changed since version {expected_version}")
        return stored

    async def _record_result(self, conn, session: GameSession) -> None:
        """Count a finished game once for both players."""
        now = _ts(now_utc())
        for uid in session.players:
            await conn.execute(
                "INSERT OR IGNORE INTO users (uid, username, created_at) VALUES (?, ?, ?)",
                (uid, uid, now),
            )
            await conn.execute(
                """
                UPDATE users
                SET total_games = total_games + 1,
                    won_games = won_games + ?
                WHERE uid = ?
                """,
                (1 if session.winner == uid else 0, uid),
            )
        logger.info(f"[STORE] Recorded result of game {session.id} for {list(session.players)}")

    async def _commit_transition(self, conn, before: GameSession, after: GameSession) -> GameSession:
        stored = await self._store_session(conn, after, before.version)
        if before.status != SessionStatus.FINISHED and stored.status == SessionStatus.FINISHED:
            await self._record_result(conn, stored)
        return stored

    # -------------------------------------------------
    # Sessions
    # -------------------------------------------------

    async def create_session(self, session: GameSession) -> GameSession:
        # Raises: UnexpectedResult
        async with self._transaction() as conn:
            await self._insert_session(conn, session)
        logger.info(f"[STORE] Created session {session.id}")
        await self._publish(session.id)
        return session

    async def read_session(self, game_id: str) -> GameSession:
        # Raises: GameNotFound, InvalidState
        async with self._read() as conn:
            return await self._fetch_session(conn, game_id)

    async def write_session(
        self,
        game_id: str,
        partial: dict,
        *,
        expected_version: Optional[int] = None,
    ) -> GameSession:
        # Raises: GameNotFound, StaleWrite, InvalidState
        """Field-level merge into the stored session.

        Keys may be given as attribute names (`player1_score`) or stored
        names (`player1Score`).
        """
        async with self._transaction() as conn:
            current = await self._fetch_session(conn, game_id)
            if expected_version is not None and current.version != expected_version:
                raise StaleWrite(f"Session {game_id} is at version {current.version}, not {expected_version}")
            doc = current.model_dump(by_alias=True, mode="json")
            for key, value in partial.items():
                if key in ("id", "version"):
                    raise InvalidState(f"{key} cannot be written directly")
                doc[_SESSION_ALIASES.get(key, key)] = value
            try:
                merged = GameSession.model_validate(doc)
            except ValidationError as exc:
                raise InvalidState(f"Update to {game_id} is invalid: {exc}") from exc
            stored = await self._commit_transition(conn, current, merged)
        await self._publish(game_id)
        return stored

    async def update_session(self, game_id: str, mutate: SessionMutator) -> GameSession:
        # Raises: GameNotFound, StaleWrite, plus anything `mutate` raises
        async with self._transaction() as conn:
            current = await self._fetch_session(conn, game_id)
            updated = mutate(current)
            if updated is current:
                return current
            stored = await self._commit_transition(conn, current, updated)
        await self._publish(game_id)
        return stored

    async def subscribe_session(self, game_id: str, on_change: SessionListener) -> Callable[[], None]:
        if self.notifier is None:
            raise RuntimeError("SqliteGameStore was created without a notifier")
        return await self.notifier.subscribe(game_id, on_change)

    async def list_sessions_for_player(self, uid: str, *, active_only: bool = False) -> list[GameSession]:
        query = """
            SELECT game_id, version, document FROM game_sessions
            WHERE (player1 = ? OR player2 = ?)
        """
        params = [uid, uid]
        if active_only:
            query += " AND status = ?"
            params.append(SessionStatus.ACTIVE.value)
        query += " ORDER BY created_at DESC"
        async with self._read() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [self._row_to_session(r) for r in rows]

    async def list_expired_sessions(self, now: datetime) -> list[str]:
        async with self._read() as conn:
            cur = await conn.execute(
                "SELECT game_id FROM game_sessions WHERE status = ? AND deadline < ? ORDER BY deadline",
                (SessionStatus.ACTIVE.value, _ts(now)),
            )
            rows = await cur.fetchall()
        return [r[0] for r in rows]

    async def delete_finished_sessions(self, older_than_days: int = 30) -> int:
        cutoff = _ts(now_utc() - timedelta(days=older_than_days))
        async with self._transaction() as conn:
            cur = await conn.execute(
                "DELETE FROM game_sessions WHERE status = ? AND updated_at < ?",
                (SessionStatus.FINISHED.value, cutoff),
            )
            deleted = cur.rowcount
        if deleted:
            logger.info(f"[STORE] Deleted {deleted} finished sessions older than {older_than_days} days")
        return deleted

    # -------------------------------------------------
    # Players
    # -------------------------------------------------

    @staticmethod
    def _row_to_profile(row) -> UserProfile:
        return UserProfile(
            uid=row["uid"],
            username=row["username"],
            total_games=row["total_games"],
            won_games=row["won_games"],
        )

    async def create_user_profile(self, uid: str, username: str) -> UserProfile:
        # Raises: PlayerAlreadyExists
        async with self._transaction() as conn:
            cur = await conn.execute("SELECT 1 FROM users WHERE uid = ?", (uid,))
            if await cur.fetchone():
                raise PlayerAlreadyExists(f"Player {uid} already exists")
            await conn.execute(
                "INSERT INTO users (uid, username, total_games, won_games, created_at) VALUES (?, ?, 0, 0, ?)",
                (uid, username, _ts(now_utc())),
            )
        logger.info(f"[STORE] Created profile for {uid}")
        return UserProfile(uid=uid, username=username)

    async def read_user_profile(self, uid: str) -> UserProfile:
        # Raises: PlayerNotFound
        async with self._read() as conn:
            cur = await conn.execute(
                "SELECT uid, username, total_games, won_games FROM users WHERE uid = ?",
                (uid,),
            )
            row = await cur.fetchone()
        if row is None:
            raise PlayerNotFound(f"Player {uid} not found")
        return self._row_to_profile(row)

    async def write_user_profile(self, uid: str, partial: dict) -> UserProfile:
        # Raises: PlayerNotFound, InvalidState
        assignments = []
        params = []
        for key, value in partial.items():
            column = _PROFILE_COLUMNS.get(key)
            if column is None:
                raise InvalidState(f"Profile field {key!r} cannot be written")
            assignments.append(f"{column} = ?")
            params.append(value)

        async with self._transaction() as conn:
            if assignments:
                cur = await conn.execute(
                    f"UPDATE users SET {', '.join(assignments)} WHERE uid = ?",
                    (*params, uid),
                )
                if cur.rowcount == 0:
                    raise PlayerNotFound(f"Player {uid} not found")
            cur = await conn.execute(
                "SELECT uid, username, total_games, won_games FROM users WHERE uid = ?",
                (uid,),
            )
            row = await cur.fetchone()
            if row is None:
                raise PlayerNotFound(f"Player {uid} not found")
        return self._row_to_profile(row)

    # -------------------------------------------------
    # Match queue
    # -------------------------------------------------

    @staticmethod
    def _row_to_entry(row) -> MatchQueueEntry:
        return MatchQueueEntry(
            id=row["entry_id"],
            requesting_player=row["requesting_player"],
            duration_class=row["duration_class"],
            enqueued_at=_from_ts(row["enqueued_at"]),
        )

    async def _queued_entries(self, conn, duration_class: str) -> list[MatchQueueEntry]:
        cur = await conn.execute(
            """
            SELECT entry_id, requesting_player, duration_class, enqueued_at
            FROM match_queue
            WHERE duration_class = ?
            ORDER BY enqueued_at, rowid
            """,
            (duration_class,),
        )
        return [self._row_to_entry(r) for r in await cur.fetchall()]

    async def _insert_entry(self, conn, duration_class: str, uid: str) -> str:
        entry_id = str(uuid.uuid4())
        await conn.execute(
            "INSERT INTO match_queue (entry_id, requesting_player, duration_class, enqueued_at) VALUES (?, ?, ?, ?)",
            (entry_id, uid, duration_class, _ts(now_utc())),
        )
        return entry_id

    async def enqueue_match(self, duration_class: str, uid: str) -> str:
        async with self._transaction() as conn:
            entry_id = await self._insert_entry(conn, duration_class, uid)
        logger.info(f"[STORE] Queued {uid} for {duration_class} ({entry_id})")
        return entry_id

    async def dequeue_oldest_match(self, duration_class: str) -> Optional[MatchQueueEntry]:
        async with self._read() as conn:
            entries = await self._queued_entries(conn, duration_class)
        return entries[0] if entries else None

    async def delete_match_entry(self, entry_id: str) -> None:
        async with self._transaction() as conn:
            await conn.execute("DELETE FROM match_queue WHERE entry_id = ?", (entry_id,))

    async def find_or_create_match(
        self,
        requester: str,
        duration_class: str,
        build_session: SessionBuilder,
    ) -> Optional[GameSession]:
        async with self._transaction() as conn:
            entries = await self._queued_entries(conn, duration_class)
            opponent = pick_opponent(entries, requester)
            if opponent is None:
                if any(e.requesting_player == requester for e in entries):
                    logger.info(f"[STORE] {requester} is already waiting for {duration_class}")
                else:
                    await self._insert_entry(conn, duration_class, requester)
                    logger.info(f"[STORE] Queued {requester} for {duration_class}")
                return None

            await conn.execute(
                "DELETE FROM match_queue WHERE entry_id = ? OR (requesting_player = ? AND duration_class = ?)",
                (opponent.id, requester, duration_class),
            )
            session = build_session(opponent.requesting_player, requester, duration_class)
            await self._insert_session(conn, session)

        await self._publish(session.id)
        return session

    async def cancel_match(self, requester: str, duration_class: Optional[str] = None) -> int:
        query = "DELETE FROM match_queue WHERE requesting_player = ?"
        params = [requester]
        if duration_class is not None:
            query += " AND duration_class = ?"
            params.append(duration_class)
        async with self._transaction() as conn:
            cur = await conn.execute(query, params)
            removed = cur.rowcount
        logger.info(f"[STORE] Removed {removed} queue entries for {requester}")
        return removed

    async def purge_stale_queue_entries(self, max_age_seconds: int) -> int:
        cutoff = _ts(now_utc() - timedelta(seconds=max_age_seconds))
        async with self._transaction() as conn:
            cur = await conn.execute("DELETE FROM match_queue WHERE enqueued_at < ?", (cutoff,))
            removed = cur.rowcount
        if removed:
            logger.info(f"[STORE] Purged {removed} stale queue entries")
        return removed
