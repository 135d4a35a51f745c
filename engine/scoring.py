"""Word scores from letter points and tile multipliers, plus mine modifiers."""
from typing import Iterable, NamedTuple

from models.domain_models import MineKind
from .constants import LETTER_FACTORS, LETTER_POINTS, SCORE_SPLIT_DENOMINATOR, SCORE_SPLIT_NUMERATOR, WORD_FACTORS


class ScoreOutcome(NamedTuple):
    raw: int
    gained: int        # added to the placer
    transferred: int   # added to the opponent


def letter_value(tile) -> int:
    if tile.is_wildcard or not tile.letter:
        return 0
    return LETTER_POINTS.get(tile.letter, 0)


def score_word(board, positions: Iterable, *, block_multipliers: bool = False) -> int:
    """Score one word spelled by `positions` on `board`.

    Every tile of the word contributes its multiplier, not only the ones laid
    this turn. With `block_multipliers` all multipliers count as x1.
    """
    total = 0
    word_factor = 1
    for pos in positions:
        tile = board.tile(pos)
        value = letter_value(tile)
        if not block_multipliers:
            value *= LETTER_FACTORS.get(tile.multiplier, 1)
            word_factor *= WORD_FACTORS.get(tile.multiplier, 1)
        total += value
    return total * word_factor


def score_words(board, words: dict, *, block_multipliers: bool = False) -> int:
    """Sum of independent scores of every word -> positions entry."""
    return sum(
        score_word(board, cells, block_multipliers=block_multipliers)
        for cells in words.values()
    )


def apply_score_modifiers(raw: int, mines: Iterable[MineKind]) -> ScoreOutcome:
    """Apply deferred mines in the order they were stepped on.

    Mines that don't touch the score (blockMultipliers, and the immediate
    kinds) pass through unchanged.
    """
    gained = raw
    transferred = 0
    for mine in mines:
        if mine == MineKind.SCORE_SPLIT:
            gained = gained * SCORE_SPLIT_NUMERATOR // SCORE_SPLIT_DENOMINATOR
        elif mine == MineKind.SCORE_TRANSFER:
            transferred += gained
            gained = 0
        elif mine == MineKind.CANCEL_WORD:
            gained = 0
            transferred = 0
    return ScoreOutcome(raw, gained, transferred)
