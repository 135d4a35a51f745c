#!/usr/bin/env python3
"""Verify the database schema and that every stored session still loads.

Sessions written by older releases are passed through the same migration
the store applies on read, so a failure here means the store would reject
that game too.
"""
import json
import sqlite3
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from stores.migrations import load_session  # noqa: E402

CRITICAL_TABLES = {'schema_meta', 'users', 'match_queue', 'game_sessions'}

db_path = sys.argv[1] if len(sys.argv) > 1 else "./db.sqlite3"

try:
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    found_tables = {t[0] for t in cursor.fetchall()}

    print(f"[VERIFY] Database at {db_path}")
    print(f"[VERIFY] Found {len(found_tables)} tables:")
    for table in sorted(found_tables):
        print(f"[VERIFY]   - {table}")

    missing = CRITICAL_TABLES - found_tables
    if missing:
        print(f"[VERIFY] ✗ CRITICAL: Missing tables: {missing}")
        sys.exit(1)
    print("[VERIFY] ✓ All critical tables present")

    broken = []
    cursor.execute("SELECT game_id, document FROM game_sessions")
    rows = cursor.fetchall()
    for game_id, document in rows:
        try:
            load_session(json.loads(document))
        except Exception as e:
            broken.append((game_id, e))
    conn.close()

    for game_id, e in broken:
        print(f"[VERIFY] ✗ Session {game_id} does not load: {e.__class__.__name__}: {e}")
    if broken:
        sys.exit(1)
    print(f"[VERIFY] ✓ {len(rows)} session(s) load cleanly")
    sys.exit(0)

except sqlite3.Error as e:
    print(f"[VERIFY] ✗ Error verifying database: {e}")
    sys.exit(1)
