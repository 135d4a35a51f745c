"""Background jobs: per-game clock expiry plus waiting-room and history housekeeping."""
import asyncio
import logging
from datetime import datetime, UTC
from functools import wraps
from typing import Any, Dict

from celery import Task
from celery.exceptions import SoftTimeLimitExceeded

import stores
from workers.celery_app import app

logger = logging.getLogger(__name__)

SOFT_LIMIT_SECONDS = 60
HARD_LIMIT_SECONDS = 180

# Waiting room entries older than this are assumed abandoned.
STALE_QUEUE_SECONDS = 60 * 60
FINISHED_RETENTION_DAYS = 30


def celery_task(**task_kwargs):
	"""Register `func` on the worker app with the shared failure policy.

	Errors flagged `retryable = False` (GameNotFound, rule violations, an
	already finished game) are logged and folded into a
	`{"status": "failure", ...}` summary so Celery does not retry them.
	Everything else, StaleWrite and StoreTimeout included, propagates to
	the autoretry configured on `KelimeTask`.
	"""
	def decorator(func):
		@wraps(func)
		def wrapper(self, *args, **kwargs):
			try:
				return func(self, *args, **kwargs)
			except SoftTimeLimitExceeded:
				logger.warning(f"[WORKER] {func.__name__} hit its soft time limit")
				raise
			except Exception as exc:
				if getattr(exc, 'retryable', True):
					logger.error(f"[WORKER] {func.__name__} will be retried: {exc.__class__.__name__}: {exc}", exc_info=True)
					raise
				logger.error(f"[WORKER] {func.__name__} gave up: {exc.__class__.__name__}: {exc}")
				return _summary("failure", error=exc.__class__.__name__, message=str(exc))
		return app.task(base=KelimeTask, **task_kwargs)(wrapper)
	return decorator


class KelimeTask(Task):
    """Task base carrying the retry policy and lifecycle logging."""

    autoretry_for = (Exception,)
    retry_kwargs = {"max_retries": 5}
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True

    def on_retry(self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo: Any) -> None:
        logger.warning(f"[WORKER] {self.name}[{task_id}] retry scheduled: {exc}", extra={"task_id": task_id})

    def on_failure(self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo: Any) -> None:
        logger.error(
            f"[WORKER] {self.name}[{task_id}] failed for args={args} kwargs={kwargs}: {exc}",
            extra={"task_id": task_id},
            exc_info=einfo,
        )

    def on_success(self, retval: Any, task_id: str, args: tuple, kwargs: dict) -> None:
        logger.info(f"[WORKER] {self.name}[{task_id}] done: {retval}", extra={"task_id": task_id})


def _summary(status: str, **fields: Any) -> Dict[str, Any]:
    return {"status": status, **fields, "timestamp": datetime.now(UTC).isoformat()}


def _game_store():
    try:
        return stores.get_game_store()
    except RuntimeError as exc:
        raise RuntimeError("game store could not be opened in the worker") from exc


@celery_task(
    bind=True,
    name="workers.tasks.resolve_timeout",
    queue="game_turns",
    priority=5,
    soft_time_limit=SOFT_LIMIT_SECONDS,
    time_limit=HARD_LIMIT_SECONDS,
)
def resolve_timeout(self, game_id: str) -> Dict[str, Any]:
    """
    Finish `game_id` if its clock has run out.

    Enqueued with an `eta` when the match is created. Firing early or more
    than once does nothing to a session that is still running or already over.

    Returns:
        summary with `game_id`, `game_status` and `winner`

    Raises:
        StaleWrite: a concurrent move won the version check (retried)
    """
    from routes import games_helpers  # routes imports this module

    session = asyncio.run(games_helpers.resolve_timeout(_game_store(), game_id))
    return _summary("success", game_id=game_id, game_status=session.status.value, winner=session.winner)


@celery_task(
    bind=True,
    name="workers.tasks.sweep_expired_sessions",
    queue="game_turns",
    priority=5,
    soft_time_limit=SOFT_LIMIT_SECONDS,
    time_limit=HARD_LIMIT_SECONDS,
)
def sweep_expired_sessions(self) -> Dict[str, Any]:
    """Beat job catching expired games whose `resolve_timeout` was lost."""
    from routes import games_helpers

    finished = asyncio.run(games_helpers.sweep_expired_sessions(_game_store()))
    if finished:
        logger.info(f"[WORKER] sweep closed {finished} expired game(s)")
    return _summary("success", finished_count=finished)


@celery_task(
    bind=True,
    name="workers.tasks.purge_stale_queue_entries",
    queue="maintenance",
    priority=2,
    soft_time_limit=SOFT_LIMIT_SECONDS,
    time_limit=HARD_LIMIT_SECONDS,
)
def purge_stale_queue_entries(self, max_age_seconds: int = STALE_QUEUE_SECONDS) -> Dict[str, Any]:
    purged = asyncio.run(_game_store().purge_stale_queue_entries(max_age_seconds))
    return _summary("success", purged_count=purged, max_age_seconds=max_age_seconds)


@celery_task(
    bind=True,
    name="workers.tasks.delete_finished_sessions",
    queue="maintenance",
    priority=2,
    soft_time_limit=SOFT_LIMIT_SECONDS,
    time_limit=HARD_LIMIT_SECONDS,
)
def delete_finished_sessions(self, older_than_days: int = FINISHED_RETENTION_DAYS) -> Dict[str, Any]:
    """Drop finished games untouched for `older_than_days`; player stats are kept."""
    deleted = asyncio.run(_game_store().delete_finished_sessions(older_than_days))
    return _summary("success", deleted_count=deleted, older_than_days=older_than_days)
