"""aiosqlite connection factory and idempotent schema setup."""
from pathlib import Path
from typing import Dict, Optional

import aiosqlite

SCHEMA_FILE = Path(__file__).parent / "schema.sql"


async def connect(
    db_path: str,
    pragmas: Optional[Dict[str, str]] = None,
    *,
    timeout: float = 10.0,
    autocommit: bool = False,
) -> aiosqlite.Connection:
    """Open a connection with rows addressable by column name.

    `timeout` is used both for the driver and for `busy_timeout`, so a writer
    waiting on `BEGIN IMMEDIATE` gives up after the same delay. With
    `autocommit=True` the driver never opens transactions on its own and the
    store issues `BEGIN IMMEDIATE` / `COMMIT` explicitly.

    The caller closes the connection.
    """
    conn = await aiosqlite.connect(db_path, timeout=timeout, isolation_level=None if autocommit else "")
    conn.row_factory = aiosqlite.Row

    settings = {"foreign_keys": "ON", "busy_timeout": str(int(timeout * 1000))}
    settings.update(pragmas or {})
    for name, value in settings.items():
        await conn.execute(f"PRAGMA {name} = {value}")
    return conn


async def ensure_db(db_path: str, schema_path: Optional[str] = None) -> None:
    """Create the database file and any missing tables.

    Every statement in the schema is `IF NOT EXISTS`; running this against a
    populated database changes nothing.
    """
    schema = Path(schema_path) if schema_path else SCHEMA_FILE
    if not schema.exists():
        raise FileNotFoundError(f"Schema file not found: {schema}")

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = await connect(db_path)
    try:
        await conn.executescript(schema.read_text(encoding="utf-8"))
        await conn.commit()
    finally:
        await conn.close()
