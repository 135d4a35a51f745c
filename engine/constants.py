"""Fixed game rules: board geometry, letter distribution, points and special tiles."""
from models.domain_models import MineKind, Multiplier, RewardKind

BOARD_SIZE = 15
CENTER = (7, 7)

RACK_SIZE = 7
MAX_PASSES = 2
MIN_VOWELS = 2
MIN_WORD_LENGTH = 2

WILDCARD = "*"

ALPHABET = (
    "A", "B", "C", "Ç", "D", "E", "F", "G", "Ğ", "H", "I", "İ", "J", "K", "L",
    "M", "N", "O", "Ö", "P", "R", "S", "Ş", "T", "U", "Ü", "V", "Y", "Z",
)

VOWELS = ("A", "E", "I", "İ", "O", "Ö", "U", "Ü")

INITIAL_LETTER_POOL = {
    "A": 12, "B": 2, "C": 2, "Ç": 2, "D": 2, "E": 8, "F": 1, "G": 1, "Ğ": 1,
    "H": 1, "I": 4, "İ": 7, "J": 1, "K": 7, "L": 7, "M": 4, "N": 5, "O": 3,
    "Ö": 1, "P": 1, "R": 6, "S": 3, "Ş": 2, "T": 5, "U": 3, "Ü": 2, "V": 1,
    "Y": 2, "Z": 2, WILDCARD: 2,
}

TOTAL_TILES = sum(INITIAL_LETTER_POOL.values())

LETTER_POINTS = {
    "A": 1, "B": 2, "C": 4, "Ç": 4, "D": 3, "E": 1, "F": 7, "G": 5, "Ğ": 8, "H": 5,
    "I": 2, "İ": 1, "J": 10, "K": 1, "L": 1, "M": 2, "N": 1, "O": 2, "Ö": 7, "P": 5,
    "R": 1, "S": 2, "Ş": 4, "T": 1, "U": 2, "Ü": 3, "V": 7, "Y": 3, "Z": 4, WILDCARD: 0,
}

MULTIPLIER_LAYOUT = {
    Multiplier.DOUBLE_LETTER: (
        (0, 3), (0, 11), (2, 6), (2, 8), (3, 0), (3, 7), (3, 14), (6, 2), (6, 6),
        (6, 8), (6, 12), (7, 3), (7, 11), (8, 2), (8, 6), (8, 8), (8, 12), (11, 0),
        (11, 7), (11, 14), (12, 6), (12, 8), (14, 3), (14, 11),
    ),
    Multiplier.TRIPLE_LETTER: (
        (1, 5), (1, 9), (5, 1), (5, 13), (9, 1), (9, 13), (13, 5), (13, 9),
    ),
    Multiplier.DOUBLE_WORD: (
        (1, 1), (2, 2), (3, 3), (4, 4), (10, 10), (11, 11), (12, 12), (13, 13),
    ),
    Multiplier.TRIPLE_WORD: (
        (0, 0), (0, 14), (14, 0), (14, 14),
    ),
}

LETTER_FACTORS = {Multiplier.DOUBLE_LETTER: 2, Multiplier.TRIPLE_LETTER: 3}
WORD_FACTORS = {Multiplier.DOUBLE_WORD: 2, Multiplier.TRIPLE_WORD: 3}

MINE_COUNTS = (
    (MineKind.SCORE_SPLIT, 5),
    (MineKind.SCORE_TRANSFER, 4),
    (MineKind.LOSE_LETTER_SET, 3),
    (MineKind.BLOCK_MULTIPLIERS, 2),
    (MineKind.CANCEL_WORD, 2),
    (MineKind.REGION_BAN, 2),
)

REWARD_COUNTS = (
    (RewardKind.LETTER_BAN, 3),
    (RewardKind.EXTRA_MOVE_JOKER, 2),
    (RewardKind.WILDCARD_SIDE_BAN, 2),
)

# Mines resolved as soon as the letter lands; the rest wait for confirm.
IMMEDIATE_MINES = frozenset({MineKind.REGION_BAN, MineKind.LOSE_LETTER_SET})

# scoreSplit keeps 30% of the raw score, rounded down.
SCORE_SPLIT_NUMERATOR = 3
SCORE_SPLIT_DENOMINATOR = 10

REGION_BAN_RADIUS = 2
LETTER_BAN_COUNT = 2
LEFT_HALF_COLUMNS = range(0, 7)
RIGHT_HALF_COLUMNS = range(7, BOARD_SIZE)

DURATION_CLASSES = {
    "2dk": 120,
    "5dk": 300,
    "12s": 43200,
    "24s": 86400,
}
