"""The 15x15 tile grid: placement rules and multi-directional word search.

`Board` wraps the session's grid in place; it never copies tiles. Positions
are `(row, col)` tuples, row-major and 0-indexed.
"""
import random
from typing import NamedTuple, Optional

from models.domain_models import MineKind, Position, RewardKind, Tile
from .constants import BOARD_SIZE, CENTER, MINE_COUNTS, MIN_WORD_LENGTH, MULTIPLIER_LAYOUT, REWARD_COUNTS
from .exceptions import (
    CellOccupied,
    FirstMoveMustBeCenter,
    InvalidPosition,
    NotAdjacent,
    NotAdjacentMove,
    SourceEmpty,
    TargetOccupied,
)

NEIGHBOUR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
)

# Horizontal, vertical, diagonal, anti-diagonal (read bottom-left to
# top-right). Earlier axes win ties when the same word text appears on more
# than one axis.
WORD_AXES = ((0, 1), (1, 0), (1, 1), (-1, 1))


class PlacementResult(NamedTuple):
    mine: Optional[MineKind]
    reward: Optional[RewardKind]
    words: set


class Board:

    def __init__(self, grid: list):
        self.grid = grid

    @classmethod
    def empty(cls) -> "Board":
        """A letterless board carrying the fixed multiplier layout."""
        grid = [[Tile() for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]
        for multiplier, cells in MULTIPLIER_LAYOUT.items():
            for row, col in cells:
                grid[row][col].multiplier = multiplier
        return cls(grid)

    @classmethod
    def from_letters(cls, letters) -> "Board":
        """An empty board with `letters` (rows of symbols or None) laid on it.

        Cells outside the 15x15 grid are ignored.
        """
        board = cls.empty()
        for r, row in enumerate(letters or []):
            for c, letter in enumerate(row or []):
                if letter and cls.in_bounds((r, c)):
                    board.grid[r][c].letter = letter
        return board

    # -------------------------------------------------
    # Queries
    # -------------------------------------------------

    @staticmethod
    def in_bounds(pos: Position) -> bool:
        row, col = pos
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    def tile(self, pos: Position) -> Tile:
        if not self.in_bounds(pos):
            raise InvalidPosition(f"{pos} is outside the board")
        return self.grid[pos[0]][pos[1]]

    def letter_at(self, pos: Position) -> Optional[str]:
        if not self.in_bounds(pos):
            return None
        return self.grid[pos[0]][pos[1]].letter

    def is_empty(self) -> bool:
        return not any(t.letter for row in self.grid for t in row)

    def letters(self) -> list:
        """Grid snapshot of the letters alone, None for empty cells."""
        return [[t.letter for t in row] for row in self.grid]

    def letter_count(self) -> int:
        return sum(1 for row in self.letters() for letter in row if letter)

    def has_neighbour(self, pos: Position, ignore: Optional[Position] = None) -> bool:
        row, col = pos
        for dr, dc in NEIGHBOUR_OFFSETS:
            other = (row + dr, col + dc)
            if other != ignore and self.letter_at(other):
                return True
        return False

    # -------------------------------------------------
    # Mutations
    # -------------------------------------------------

    def check_placement(self, pos: Position) -> None:
        """Raise the rule violation a placement at `pos` would hit, if any."""
        tile = self.tile(pos)
        if tile.letter:
            raise CellOccupied(f"{pos} already holds {tile.letter}")
        if self.is_empty():
            if pos != CENTER:
                raise FirstMoveMustBeCenter(f"The first letter must go on {CENTER}")
        elif not self.has_neighbour(pos):
            raise NotAdjacent(f"{pos} does not touch any letter")

    def place_letter(self, pos: Position, letter: str, lexicon, *, is_wildcard: bool = False) -> PlacementResult:
        """Put `letter` on `pos`, consuming any special on that tile.

        Raises:
            InvalidPosition: If `pos` is off the board.
            CellOccupied: If the tile already holds a letter.
            FirstMoveMustBeCenter: If the board is empty and `pos` is not the center.
            NotAdjacent: If no 8-neighbour of `pos` holds a letter.
        """
        self.check_placement(pos)
        tile = self.tile(pos)
        tile.letter = letter
        tile.is_wildcard = is_wildcard
        mine, reward = tile.mine, tile.reward
        tile.mine = None
        tile.reward = None
        return PlacementResult(mine, reward, self.extract_candidate_words(pos, lexicon))

    def move_letter(self, src: Position, dst: Position) -> None:
        """Slide a letter to an empty 8-adjacent tile. Specials stay where they are.

        Raises:
            InvalidPosition: If either position is off the board.
            SourceEmpty: If `src` holds no letter.
            TargetOccupied: If `dst` already holds a letter.
            NotAdjacentMove: If `dst` is not an 8-neighbour of `src`.
        """
        source = self.tile(src)
        target = self.tile(dst)
        if not source.letter:
            raise SourceEmpty(f"{src} holds no letter")
        if target.letter:
            raise TargetOccupied(f"{dst} already holds {target.letter}")
        if max(abs(src[0] - dst[0]), abs(src[1] - dst[1])) != 1:
            raise NotAdjacentMove(f"{dst} is not next to {src}")
        target.letter, target.is_wildcard = source.letter, source.is_wildcard
        source.letter, source.is_wildcard = None, False

    def clear_letter(self, pos: Position) -> Optional[str]:
        tile = self.tile(pos)
        letter = tile.letter
        tile.letter = None
        tile.is_wildcard = False
        return letter

    def place_specials(self, rng: random.Random) -> None:
        """Scatter mines and rewards over distinct random tiles."""
        cells = [(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)]
        needed = sum(n for _, n in MINE_COUNTS) + sum(n for _, n in REWARD_COUNTS)
        chosen = iter(rng.sample(cells, needed))
        for kind, count in MINE_COUNTS:
            for _ in range(count):
                row, col = next(chosen)
                self.grid[row][col].mine = kind
        for kind, count in REWARD_COUNTS:
            for _ in range(count):
                row, col = next(chosen)
                self.grid[row][col].reward = kind

    # -------------------------------------------------
    # Word search
    # -------------------------------------------------

    def run_through(self, pos: Position, axis) -> list:
        """Positions of the maximal contiguous letter run through `pos` along `axis`."""
        if not self.letter_at(pos):
            return []
        dr, dc = axis
        row, col = pos
        while self.letter_at((row - dr, col - dc)):
            row, col = row - dr, col - dc
        run = []
        while self.letter_at((row, col)):
            run.append((row, col))
            row, col = row + dr, col + dc
        return run

    def full_runs(self, pos: Position) -> list:
        """Text of every run of two or more letters through `pos`, one per axis."""
        runs = []
        for axis in WORD_AXES:
            run = self.run_through(pos, axis)
            if len(run) >= MIN_WORD_LENGTH:
                runs.append("".join(self.letter_at(p) for p in run))
        return runs

    def candidate_word_positions(self, pos: Position, lexicon) -> dict:
        """Map every dictionary word through `pos` to the cells that spell it.

        Each of the four axes contributes every contiguous substring of its
        run that contains `pos`, is at least two letters long and is in the
        lexicon.
        """
        found: dict = {}
        for axis in WORD_AXES:
            run = self.run_through(pos, axis)
            if len(run) < MIN_WORD_LENGTH:
                continue
            anchor = run.index(pos)
            for start in range(anchor + 1):
                for end in range(max(anchor, start + MIN_WORD_LENGTH - 1), len(run)):
                    cells = run[start:end + 1]
                    word = "".join(self.letter_at(p) for p in cells)
                    if word not in found and word in lexicon:
                        found[word] = cells
        return found

    def extract_candidate_words(self, pos: Position, lexicon) -> set:
        return set(self.candidate_word_positions(pos, lexicon))
