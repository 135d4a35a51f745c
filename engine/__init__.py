"""The Kelime Mayınları game engine.

Pure rules over `models.domain_models.GameSession`; persistence, transport
and timers live in `stores`, `routes` and `workers`.
"""
from .lexicon import Lexicon, get_lexicon, set_lexicon
from .letter_pool import LetterPool
from .board import Board, PlacementResult
from .scoring import ScoreOutcome, apply_score_modifiers, score_word, score_words
from .turn_engine import (
    ActionResult,
    activate_reward,
    confirm_move,
    finish_by_score,
    is_expired,
    move_letter,
    new_session,
    pass_turn,
    phase,
    place_letter,
    pool_invariant_total,
    remaining_seconds,
    resolve_timeout,
    revert_placement,
    session_rng,
    surrender,
)
from .match_finder import create_session, duration_seconds, pick_opponent

# Exceptions
from .exceptions import (
    EngineError,
    RuleViolation,
    CellOccupied,
    FirstMoveMustBeCenter,
    NotAdjacent,
    NotAdjacentMove,
    SourceEmpty,
    TargetOccupied,
    InvalidWord,
    NoWordFormed,
    PassLimitExceeded,
    NotYourTurn,
    LetterNotInRack,
    InvalidLetter,
    CellBanned,
    LetterFrozen,
    TileNotMovable,
    NoPendingPlacement,
    RewardNotHeld,
    NotAPlayer,
    InvalidPosition,
    InvalidDurationClass,
    GameFinished,
)

__all__ = [
    "Lexicon",
    "get_lexicon",
    "set_lexicon",
    "LetterPool",
    "Board",
    "PlacementResult",
    "ScoreOutcome",
    "apply_score_modifiers",
    "score_word",
    "score_words",
    "ActionResult",
    "activate_reward",
    "confirm_move",
    "finish_by_score",
    "is_expired",
    "move_letter",
    "new_session",
    "pass_turn",
    "phase",
    "place_letter",
    "pool_invariant_total",
    "remaining_seconds",
    "resolve_timeout",
    "revert_placement",
    "session_rng",
    "surrender",
    "create_session",
    "duration_seconds",
    "pick_opponent",
    # Exceptions
    "EngineError",
    "RuleViolation",
    "CellOccupied",
    "FirstMoveMustBeCenter",
    "NotAdjacent",
    "NotAdjacentMove",
    "SourceEmpty",
    "TargetOccupied",
    "InvalidWord",
    "NoWordFormed",
    "PassLimitExceeded",
    "NotYourTurn",
    "LetterNotInRack",
    "InvalidLetter",
    "CellBanned",
    "LetterFrozen",
    "TileNotMovable",
    "NoPendingPlacement",
    "RewardNotHeld",
    "NotAPlayer",
    "InvalidPosition",
    "InvalidDurationClass",
    "GameFinished",
]
