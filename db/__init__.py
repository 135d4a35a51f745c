"""SQLite access: `connect` for per-operation connections, `ensure_db` for schema setup."""

from .connections import connect, ensure_db, SCHEMA_FILE

__all__ = ["connect", "ensure_db", "SCHEMA_FILE"]
