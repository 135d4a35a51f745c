"""Utility helpers used across the project.

Make commonly used helpers available at the package level for convenience.

Exports:
- time helpers: `now_utc`, `ensure_utc`, `to_iso`
- validation helpers: `is_valid_name`, `PLAYER_ID_RE`
- text helpers: `turkish_lower`, `turkish_upper`
"""

from .time import now_utc, ensure_utc, to_iso
from .validation import is_valid_name, PLAYER_ID_RE
from .text import turkish_lower, turkish_upper

__all__ = [
	"now_utc",
	"ensure_utc",
	"to_iso",
	"is_valid_name",
	"PLAYER_ID_RE",
	"turkish_lower",
	"turkish_upper",
]
