"""Remaining tile counts and the constrained random draw used to fill racks."""
import random
from collections import Counter
from typing import Iterable, Mapping, Optional

from .constants import INITIAL_LETTER_POOL, MIN_VOWELS, RACK_SIZE, VOWELS


def count_vowels(letters: Mapping[str, int]) -> int:
    return sum(n for symbol, n in letters.items() if symbol in VOWELS)


def rack_size(rack: Mapping[str, int]) -> int:
    return sum(rack.values())


def add_to_rack(rack: dict, letters: Mapping[str, int]) -> None:
    for symbol, n in letters.items():
        if n > 0:
            rack[symbol] = rack.get(symbol, 0) + n


def take_from_rack(rack: dict, symbol: str) -> bool:
    """Remove one `symbol` from `rack`. Returns False when it isn't held."""
    held = rack.get(symbol, 0)
    if held <= 0:
        return False
    if held == 1:
        del rack[symbol]
    else:
        rack[symbol] = held - 1
    return True


class LetterPool:
    """Mutable view over a symbol -> count mapping.

    The mapping is shared, not copied, so a pool built over
    `session.letter_pool` mutates the session in place.
    """

    def __init__(self, counts: dict):
        self.counts = counts

    @classmethod
    def initial(cls) -> "LetterPool":
        return cls(dict(INITIAL_LETTER_POOL))

    def remaining(self, symbol: str) -> int:
        return self.counts.get(symbol, 0)

    def total(self) -> int:
        return sum(self.counts.values())

    def available(self, exclude: Iterable[str] = ()) -> list[str]:
        excluded = set(exclude)
        return sorted(s for s, n in self.counts.items() if n > 0 and s not in excluded)

    def draw(
        self,
        n: int,
        held: Optional[Mapping[str, int]],
        rng: random.Random,
        exclude: Iterable[str] = (),
    ) -> Counter:
        """Draw up to `n` tiles.

        While the requester (held plus drawn so far) has fewer than two vowels,
        the draw is restricted to vowels still in the pool. Every pick is
        uniform over the symbols with a positive count. Returns fewer tiles
        than requested once the pool runs dry; it never raises.
        """
        excluded = set(exclude)
        drawn: Counter = Counter()
        vowels_held = count_vowels(held or {})

        for _ in range(max(n, 0)):
            candidates = self.available(excluded)
            if not candidates:
                break
            if vowels_held + count_vowels(drawn) < MIN_VOWELS:
                vowels = [s for s in candidates if s in VOWELS]
                if vowels:
                    candidates = vowels
            symbol = rng.choice(candidates)
            self.counts[symbol] -= 1
            drawn[symbol] += 1

        return drawn

    def release(self, letters: Mapping[str, int]) -> None:
        for symbol, n in letters.items():
            if n > 0:
                self.counts[symbol] = self.counts.get(symbol, 0) + n

    def refill_rack(self, rack: dict, rng: random.Random, exclude: Iterable[str] = ()) -> Counter:
        """Top `rack` up to RACK_SIZE tiles in place. Returns what was drawn."""
        missing = RACK_SIZE - rack_size(rack)
        if missing <= 0:
            return Counter()
        drawn = self.draw(missing, rack, rng, exclude)
        add_to_rack(rack, drawn)
        return drawn
