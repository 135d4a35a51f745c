"""Validated Turkish word set.

Words are folded to lowercase with the Turkish dotted/dotless I rules at load
time, and every lookup is folded the same way, so callers can query with the
uppercase board letters directly.
"""
import logging
from pathlib import Path
from typing import Iterable, Optional

import config
from utils import turkish_lower

logger = logging.getLogger(__name__)


class Lexicon:

    def __init__(self, words: Iterable[str] = ()):
        self._words = frozenset(
            turkish_lower(w.strip()) for w in words if w and w.strip()
        )

    @classmethod
    def from_file(cls, path) -> "Lexicon":
        """Load a newline-delimited word list.

        Raises:
            FileNotFoundError: If `path` does not exist.
        """
        path = Path(path)
        with path.open(encoding="utf-8") as fh:
            lexicon = cls(fh)
        logger.info(f"Loaded {len(lexicon)} words from {path}")
        return lexicon

    def __contains__(self, word) -> bool:
        return isinstance(word, str) and turkish_lower(word) in self._words

    def __len__(self) -> int:
        return len(self._words)

    def is_valid(self, word: str) -> bool:
        return word in self


_lexicon: Optional[Lexicon] = None


def get_lexicon() -> Lexicon:
    """Return the process-wide lexicon, loading it from config on first use."""
    global _lexicon
    if _lexicon is None:
        path = Path(config.WORDLIST_PATH)
        if not path.exists():
            raise RuntimeError(f"Word list not found at {path}; set KELIME_WORDLIST_PATH")
        _lexicon = Lexicon.from_file(path)
    return _lexicon


def set_lexicon(lexicon: Optional[Lexicon]) -> None:
    global _lexicon
    _lexicon = lexicon
