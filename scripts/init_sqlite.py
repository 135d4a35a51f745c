#!/usr/bin/env python3
"""Initialize SQLite database from schema.sql using Python's sqlite3 module."""
import sqlite3
import sys
import os
from pathlib import Path

CRITICAL_TABLES = ['schema_meta', 'users', 'match_queue', 'game_sessions']


def init_db(db_path: str, schema_path: str, *, reset: bool = False) -> None:
    """Initialize SQLite database from schema file.

    With `reset` every existing table is dropped first; otherwise the
    schema's IF NOT EXISTS statements leave existing data in place.
    """
    db_path = Path(db_path).resolve()
    schema_path = Path(schema_path).resolve()

    if not schema_path.exists():
        print(f"[INIT] ✗ Error: Schema file not found at {schema_path}", file=sys.stderr)
        sys.exit(1)

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))
        cursor = conn.cursor()

        if reset:
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
            for (table,) in cursor.fetchall():
                cursor.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()

        conn.executescript(schema_path.read_text(encoding="utf-8"))
        conn.commit()

        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        created_tables = {t[0] for t in cursor.fetchall()}
        missing = [t for t in CRITICAL_TABLES if t not in created_tables]
        conn.close()
        if missing:
            print(f"[INIT] ✗ Error: Missing critical tables {missing}", file=sys.stderr)
            sys.exit(1)

        # Readable and writable by the web and worker containers alike
        os.chmod(str(db_path), 0o666)
        print(f"[INIT] ✓ Database initialized at {db_path}")

    except sqlite3.Error as e:
        print(f"[INIT] ✗ Error: Failed to initialize database: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a != "--reset"]
    db_path = args[0] if len(args) > 0 else "./db.sqlite3"
    schema_path = args[1] if len(args) > 1 else str(Path(__file__).parent.parent / "db" / "schema.sql")
    init_db(db_path, schema_path, reset="--reset" in sys.argv)
