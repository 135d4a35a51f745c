"""Checks on client-supplied identifiers."""
import regex as re


# Letters and marks of any script (Turkish dotted/dotless i included), digits, and a few joiners
PLAYER_ID_RE = re.compile(r"^[\p{L}\p{M}\p{N} .'\-_`’·]+$", flags=re.UNICODE)

MAX_PLAYER_ID_LENGTH = 64
RESERVED_IDS = frozenset({"system"})


def is_valid_name(s: str) -> bool:
	"""True if `s` can be used as a player id.

	Surrounding whitespace is ignored; blank and reserved ids are refused.
	"""
	if not s or s.isspace():
		return False
	s = s.strip()
	if s in RESERVED_IDS or len(s) > MAX_PLAYER_ID_LENGTH:
		return False
	return bool(PLAYER_ID_RE.match(s))
