"""Worker application: broker wiring, queues and the beat timetable."""
import logging
import os
import sys
from pathlib import Path

# `celery -A workers.celery_app` may be launched from outside the repo root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

# Clock math runs in UTC regardless of the host zone
os.environ['TZ'] = 'UTC'

import pytz
from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

import config

logger = logging.getLogger(__name__)

QUEUE_NAMES = ("default", "game_turns", "maintenance")
MAX_PRIORITY = 10

app = Celery("kelime_mayinlari")

logger.info(f"[CELERY] broker={config.CELERY_BROKER_URL} backend={config.CELERY_RESULT_BACKEND}")

app.config_from_object({
    "broker_url": config.CELERY_BROKER_URL,
    "result_backend": config.CELERY_RESULT_BACKEND,
    "task_serializer": "json",
    "result_serializer": "json",
    "accept_content": ["json"],
    "timezone": pytz.UTC,
    "enable_utc": True,
    # A timeout must not be lost if a worker dies mid-task
    "task_acks_late": True,
    "worker_prefetch_multiplier": 1,
    "task_default_retry_delay": 60,
    "task_max_retries": 5,
})


def _priority_queue(name: str) -> Queue:
    return Queue(
        name,
        exchange=Exchange(name, type="direct"),
        routing_key=name,
        queue_arguments={"x-max-priority": MAX_PRIORITY},
    )


app.conf.task_queues = tuple(_priority_queue(name) for name in QUEUE_NAMES)
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"


def _entry(task: str, schedule, queue: str, priority: int) -> dict:
    return {
        "task": f"workers.tasks.{task}",
        "schedule": schedule,
        "options": {"queue": queue, "priority": priority},
    }


# Celery Beat, default file-backed scheduler
app.conf.beat_schedule = {
    "sweep-expired-sessions": _entry(
        "sweep_expired_sessions", float(config.TIMEOUT_SWEEP_SECONDS), "game_turns", 5,
    ),
    "purge-stale-queue-entries": _entry(
        "purge_stale_queue_entries", crontab(minute="*/15"), "maintenance", 2,
    ),
    "delete-finished-sessions": _entry(
        "delete_finished_sessions", crontab(minute=0, hour=3), "maintenance", 2,
    ),
}

# The store is opened lazily by workers.tasks on first use, inside the
# event loop each task creates with asyncio.run().
