"""
Game business logic helpers.

These functions encapsulate game operations and can be called from:
- HTTP routes (routes/games.py)
- Celery tasks (workers/tasks.py)
- the in-process timeout sweep (main.py)

They operate on domain objects and store instances, not HTTP requests.
Every session mutation goes through `store.update_session`, so the turn
check, the rule checks and the write happen in one transaction.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from engine import (
    ActionResult,
    GameFinished,
    create_session,
    duration_seconds,
    phase,
    remaining_seconds,
    resolve_timeout as resolve_session_timeout,
)
from models.domain_models import GameSession, SessionStatus
from stores import GameStore, StaleWrite
from utils import now_utc

logger = logging.getLogger(__name__)

# Optimistic retries for the rare case two writers race on one version.
MAX_STALE_RETRIES = 3


def censor_game_state(session: GameSession, viewer: Optional[str], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Serialise `session` for `viewer`.

    Hidden specials are stripped from every tile. The opponent's rack,
    rewards and frozen letters are reduced to counts, and the mines parked
    on a pending placement are only shown to the player who placed it, so a
    client can only see what its own player could see at the table.
    """
    now = now or now_utc()
    data = session.model_dump(by_alias=True, mode="json")
    data.pop("seed", None)

    for row in data["board"]:
        for tile in row:
            tile.pop("mine", None)
            tile.pop("reward", None)

    racks = data.get("racks", {})
    rewards = data.get("rewards", {})
    bans = data.get("bans", {})
    for player in session.players:
        if player == viewer:
            continue
        if player in racks:
            racks[player] = {"hidden": sum(racks[player].values())}
        if player in rewards:
            rewards[player] = len(rewards[player])
        if player in bans:
            bans[player]["frozenLetters"] = sum(bans[player]["frozenLetters"].values())

    if viewer != session.current_turn:
        data["pending"].pop("deferredMines", None)

    data["phase"] = phase(session).value
    data["remainingSeconds"] = remaining_seconds(session, now)
    return data


def events_to_dicts(events) -> list[Dict[str, Any]]:
    return [e.model_dump(by_alias=True, mode="json") for e in events]


async def run_action(
    store: GameStore,
    game_id: str,
    action: Callable[[GameSession], ActionResult],
    *,
    now: Optional[datetime] = None,
) -> ActionResult:
    """Apply one engine action to the stored session.

    The session's clock is checked first inside the same transaction: if
    it already ran out, the timeout is persisted and GameFinished raised
    instead of running the action.

    Raises:
        GameNotFound: if game does not exist
        GameFinished: if the game is (or just became) finished
        RuleViolation: if the action breaks a rule; nothing is written
        StaleWrite: if every retry lost the race
    """
    now = now or now_utc()

    for attempt in range(1, MAX_STALE_RETRIES + 1):
        outcome: Dict[str, ActionResult] = {}

        def mutate(session: GameSession) -> GameSession:
            expired = resolve_session_timeout(session, now)
            if expired.session is not session:
                outcome["expired"] = expired
                return expired.session
            result = action(session)
            outcome["result"] = result
            return result.session

        try:
            stored = await store.update_session(game_id, mutate)
        except StaleWrite:
            if attempt == MAX_STALE_RETRIES:
                raise
            logger.warning(f"Stale write on game {game_id}, retrying ({attempt}/{MAX_STALE_RETRIES})")
            continue

        if "expired" in outcome:
            logger.info(f"Game {game_id} ran out of time before the action")
            raise GameFinished(f"Game {game_id} finished on time")
        return ActionResult(stored, outcome["result"].events)

    raise StaleWrite(f"Could not update game {game_id}")


async def resolve_timeout(store: GameStore, game_id: str, *, now: Optional[datetime] = None) -> GameSession:
    """Finish `game_id` if its clock ran out. Returns the (possibly unchanged) session.

    Raises:
        GameNotFound: if game does not exist
    """
    now = now or now_utc()
    return await store.update_session(game_id, lambda s: resolve_session_timeout(s, now).session)


async def sweep_expired_sessions(store: GameStore, *, now: Optional[datetime] = None) -> int:
    """Resolve every active session past its deadline. Returns how many were finished."""
    now = now or now_utc()
    finished = 0
    for game_id in await store.list_expired_sessions(now):
        try:
            session = await resolve_timeout(store, game_id, now=now)
        except StaleWrite:
            # Someone else is writing it; their transaction resolves the timeout.
            logger.info(f"Skipped expired game {game_id}; it is being updated")
            continue
        if session.status == SessionStatus.FINISHED:
            finished += 1
    if finished:
        logger.info(f"Resolved {finished} expired games")
    return finished


async def find_match(
    store: GameStore,
    uid: str,
    duration_class: str,
    *,
    now: Optional[datetime] = None,
) -> Optional[GameSession]:
    """Pair `uid` with a waiting player, or queue them.

    Returns the new session, or None when `uid` was queued.

    Raises:
        InvalidDurationClass: if `duration_class` is unknown
    """
    duration_seconds(duration_class)
    now = now or now_utc()

    def build(waiting: str, requester: str, cls: str) -> GameSession:
        return create_session(waiting, requester, cls, now)

    return await store.find_or_create_match(uid, duration_class, build)


async def poll_match(store: GameStore, uid: str) -> Optional[GameSession]:
    """Newest active session of `uid`, so a queued player can discover their match."""
    sessions = await store.list_sessions_for_player(uid, active_only=True)
    return sessions[0] if sessions else None


async def cancel_match(store: GameStore, uid: str, duration_class: Optional[str] = None) -> Dict[str, Any]:
    removed = await store.cancel_match(uid, duration_class)
    return {"uid": uid, "removed": removed}


async def list_games(store: GameStore, uid: str, *, active_only: bool = False) -> list[Dict[str, Any]]:
    """Short summaries of every game `uid` plays in, newest first."""
    now = now_utc()
    games = []
    for session in await store.list_sessions_for_player(uid, active_only=active_only):
        games.append({
            "gameId": session.id,
            "opponent": session.opponent_of(uid),
            "status": session.status.value,
            "currentTurn": session.current_turn,
            "myScore": session.score_of(uid),
            "opponentScore": session.score_of(session.opponent_of(uid)),
            "winner": session.winner,
            "durationClass": session.duration_class,
            "remainingSeconds": remaining_seconds(session, now),
        })
    return games
