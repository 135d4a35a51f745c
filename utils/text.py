"""Turkish-aware case folding.

`str.lower()` maps "I" to "i" and "İ" to "i̇" (two code points), which breaks
both dictionary lookups and one-letter-per-cell indexing. These helpers apply
the Turkish dotted/dotless pairs first.
"""

_LOWER_MAP = str.maketrans({"I": "ı", "İ": "i"})
_UPPER_MAP = str.maketrans({"i": "İ", "ı": "I"})


def turkish_lower(s: str) -> str:
	"""Lowercase `s` with Turkish rules (I→ı, İ→i)."""
	return s.translate(_LOWER_MAP).lower()


def turkish_upper(s: str) -> str:
	"""Uppercase `s` with Turkish rules (i→İ, ı→I)."""
	return s.translate(_UPPER_MAP).upper()
