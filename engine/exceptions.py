"""
Exceptions raised by the game engine.

Hierarchy:
- EngineError (base for all engine exceptions)
  - RuleViolation (a rejected action; state is never mutated)
  - GameFinished (any mutation of a finished session)

All carry a class-level `retryable` flag, the same convention the store
exceptions use, so callers can treat both families uniformly.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""
    retryable: bool = False


# =========================
# Rule violations
# =========================

class RuleViolation(EngineError):
    """An action broke a game rule. The session is left untouched."""
    retryable = False


class CellOccupied(RuleViolation):
    pass


class FirstMoveMustBeCenter(RuleViolation):
    pass


class NotAdjacent(RuleViolation):
    pass


class NotAdjacentMove(RuleViolation):
    pass


class SourceEmpty(RuleViolation):
    pass


class TargetOccupied(RuleViolation):
    pass


class InvalidWord(RuleViolation):

    def __init__(self, words):
        self.words = sorted(words)
        super().__init__(f"Not in the word list: {', '.join(self.words)}")


class NoWordFormed(RuleViolation):
    pass


class PassLimitExceeded(RuleViolation):
    pass


class NotYourTurn(RuleViolation):
    pass


class LetterNotInRack(RuleViolation):
    pass


class InvalidLetter(RuleViolation):
    pass


class CellBanned(RuleViolation):
    pass


class LetterFrozen(RuleViolation):
    pass


class TileNotMovable(RuleViolation):
    pass


class NoPendingPlacement(RuleViolation):
    pass


class RewardNotHeld(RuleViolation):
    pass


class NotAPlayer(RuleViolation):
    pass


class InvalidPosition(RuleViolation):
    pass


class InvalidDurationClass(RuleViolation):
    pass


# =========================
# Terminal state
# =========================

class GameFinished(EngineError):
    retryable = False
