"""Time utilities: timezone-aware helpers and ISO formatting.

Every timestamp the game persists is normalised to UTC so that any process
comparing `now - start_time` against a session duration reaches the same answer.
"""
from datetime import datetime, timezone


def now_utc() -> datetime:
	"""Return current UTC datetime with tzinfo set."""
	return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
	"""Return `dt` converted to UTC. Naive datetimes are assumed to already be UTC."""
	if dt.tzinfo is None:
		return dt.replace(tzinfo=timezone.utc)
	return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
	"""Serialize a datetime to an ISO8601 string in UTC."""
	return ensure_utc(dt).isoformat()
