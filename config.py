import os
from pathlib import Path

# Path to the SQLite database file used by stores. Can be overridden
# using the KELIME_DB_PATH environment variable.
DB_PATH = os.environ.get("KELIME_DB_PATH", str(Path(__file__).parent / "db.sqlite3"))

# Newline-delimited Turkish word list; folded to lowercase at load.
WORDLIST_PATH = os.environ.get("KELIME_WORDLIST_PATH", str(Path(__file__).parent / "data" / "turkce_kelime_listesi.txt"))

# Seconds a store operation may wait on a locked database before failing.
STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "10"))

# Interval of the in-process expired-session sweep (APScheduler).
TIMEOUT_SWEEP_SECONDS = int(os.environ.get("TIMEOUT_SWEEP_SECONDS", "30"))

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# Session change notifications go through Redis pub/sub when set; otherwise
# subscribers are notified in-process only.
REDIS_URL = os.environ.get("REDIS_URL", "")

GAME_TIMEZONE = os.environ.get("GAME_TIMEZONE", "Europe/Istanbul")

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
