"""Upgrade stored session documents to the current schema.

Version 1 is the loosely-typed document written by the first mobile client:
`duration` as a string such as "2dk" or "12saat", `turn` instead of
`currentTurn`, the board as a JSON string of letters, an `isFinished` flag,
and no guaranteed `startTime`. Every document read from the store passes
through `migrate_session_document` before validation, so nothing downstream
needs per-field defaults.
"""
import hashlib
import json
import logging
from datetime import datetime
from typing import Optional

from engine.board import Board
from engine.constants import DURATION_CLASSES
from models.domain_models import SCHEMA_VERSION, GameSession
from utils import now_utc, to_iso

logger = logging.getLogger(__name__)

LEGACY_DURATION_NAMES = {
    "2dk": "2dk",
    "5dk": "5dk",
    "12s": "12s",
    "24s": "24s",
    "12saat": "12s",
    "24saat": "24s",
}
DEFAULT_DURATION_CLASS = "2dk"

_KNOWN_FIELDS = {field.alias or name for name, field in GameSession.model_fields.items()}


def _legacy_seed(game_id: str) -> int:
    return int(hashlib.sha256(game_id.encode("utf-8")).hexdigest()[:15], 16)


def _duration_class_for_seconds(seconds: int) -> str:
    for name, value in DURATION_CLASSES.items():
        if value == seconds:
            return name
    return DEFAULT_DURATION_CLASS


def _legacy_board(raw) -> list:
    letters = raw
    if isinstance(raw, str):
        try:
            letters = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            logger.warning("Unreadable legacy board; starting from an empty grid")
            letters = []
    board = Board.from_letters(letters)
    return [[t.model_dump(by_alias=True, mode="json") for t in row] for row in board.grid]


def _upgrade_v1(doc: dict, now: datetime) -> dict:
    doc = dict(doc)

    duration = doc.pop("duration", None)
    if isinstance(duration, str):
        duration_class = LEGACY_DURATION_NAMES.get(duration, DEFAULT_DURATION_CLASS)
        doc.setdefault("durationClass", duration_class)
        doc.setdefault("durationSeconds", DURATION_CLASSES[duration_class])
    elif isinstance(duration, (int, float)):
        doc.setdefault("durationSeconds", int(duration))
        doc.setdefault("durationClass", _duration_class_for_seconds(int(duration)))
    doc.setdefault("durationClass", DEFAULT_DURATION_CLASS)
    doc.setdefault("durationSeconds", DURATION_CLASSES[doc["durationClass"]])

    turn = doc.pop("turn", None)
    if turn and not doc.get("currentTurn"):
        doc["currentTurn"] = turn
    doc.setdefault("currentTurn", doc.get("player1"))

    if doc.pop("isFinished", False):
        doc["status"] = "finished"

    board = doc.get("board")
    if not isinstance(board, list) or (board and not isinstance(board[0], list)) or (
        board and board[0] and not isinstance(board[0][0], dict)
    ):
        doc["board"] = _legacy_board(board)

    created = doc.get("createdAt") or doc.get("startTime") or to_iso(now)
    doc.setdefault("createdAt", created)
    if not doc.get("startTime"):
        doc["startTime"] = created

    doc.setdefault("letterPool", {})
    doc.setdefault("racks", {doc["player1"]: {}, doc["player2"]: {}})
    doc.setdefault("seed", _legacy_seed(doc["id"]))
    doc.setdefault("version", 0)
    return doc


def migrate_session_document(doc: dict, *, now: Optional[datetime] = None) -> dict:
    """Return `doc` upgraded to SCHEMA_VERSION.

    Unknown keys left over from older clients are dropped.
    """
    version = doc.get("schemaVersion", 1)
    if version > SCHEMA_VERSION:
        raise ValueError(f"Session schema {version} is newer than supported {SCHEMA_VERSION}")
    if version < 2:
        doc = _upgrade_v1(doc, now or now_utc())
        logger.info(f"Migrated legacy session {doc.get('id')} to schema {SCHEMA_VERSION}")
    doc["schemaVersion"] = SCHEMA_VERSION
    return {k: v for k, v in doc.items() if k in _KNOWN_FIELDS}


def load_session(doc: dict) -> GameSession:
    return GameSession.model_validate(migrate_session_document(doc))
