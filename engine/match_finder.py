"""Pairing rules for the match queue.

The queue itself lives in the store; these helpers decide who pairs with
whom and build the session for a new pair. The store runs them inside one
transaction per request so a queue entry is never claimed twice.
"""
import logging
import secrets
import uuid
from datetime import datetime
from typing import Iterable, Optional

from models.domain_models import GameSession, MatchQueueEntry
from .constants import DURATION_CLASSES
from .exceptions import InvalidDurationClass
from .turn_engine import new_session

logger = logging.getLogger(__name__)


def duration_seconds(duration_class: str) -> int:
    """Seconds a game of `duration_class` lasts.

    Raises:
        InvalidDurationClass: If the class is not one of DURATION_CLASSES.
    """
    try:
        return DURATION_CLASSES[duration_class]
    except KeyError:
        raise InvalidDurationClass(
            f"Unknown duration class {duration_class!r}; expected one of {sorted(DURATION_CLASSES)}"
        ) from None


def pick_opponent(entries: Iterable[MatchQueueEntry], requester: str) -> Optional[MatchQueueEntry]:
    """Oldest entry not posted by `requester`, or None."""
    candidates = [e for e in entries if e.requesting_player != requester]
    if not candidates:
        return None
    return min(candidates, key=lambda e: e.enqueued_at)


def create_session(
    waiting_player: str,
    requester: str,
    duration_class: str,
    now: datetime,
    *,
    seed: Optional[int] = None,
    game_id: Optional[str] = None,
) -> GameSession:
    """New session between the player who waited and the one who just asked."""
    session = new_session(
        game_id or str(uuid.uuid4()),
        waiting_player,
        requester,
        duration_class=duration_class,
        duration_seconds=duration_seconds(duration_class),
        now=now,
        seed=secrets.randbits(63) if seed is None else seed,
    )
    logger.info(f"Matched {waiting_player} with {requester} in game {session.id} ({duration_class})")
    return session
