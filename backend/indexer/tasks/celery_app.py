"""Celery application configuration and beat schedule."""

from datetime import timedelta

from celery import Celery
from celery.schedules import crontab

from indexer.config import get_settings

settings = get_settings()

celery_app = Celery(
    "indexer",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "indexer.tasks.indexation_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=3600,
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "run-inspection-sweep": {
        "task": "indexer.tasks.indexation_tasks.run_inspection_sweep",
        "schedule": timedelta(minutes=settings.sweep_interval_minutes),
    },
    "process-submission-queues": {
        "task": "indexer.tasks.indexation_tasks.process_submission_queues",
        "schedule": timedelta(minutes=settings.queue_retry_interval_minutes),
    },
    "snapshot-indexation-history": {
        "task": "indexer.tasks.indexation_tasks.snapshot_all_properties",
        "schedule": crontab(minute=50, hour=23),
    },
}
