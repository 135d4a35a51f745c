"""Celery worker side of the game server.

`celery_app` holds the broker configuration and beat timetable; `tasks`
holds the jobs it runs (clock expiry, waiting-room purge, history cleanup).
"""

# Task registration must happen before the worker consumes anything
try:
    from . import tasks as _registered
except ImportError:
    _registered = None

_TASK_NAMES = (
    "resolve_timeout",
    "sweep_expired_sessions",
    "purge_stale_queue_entries",
    "delete_finished_sessions",
)


def __getattr__(name):
    if name == "celery_app":
        from .celery_app import app
        return app
    if name == "tasks" or name in _TASK_NAMES:
        from . import tasks
        return tasks if name == "tasks" else getattr(tasks, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["celery_app", "tasks", *_TASK_NAMES]
