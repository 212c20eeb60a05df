"""Celery application configuration."""

from celery import Celery

from ghstars.config import get_settings

settings = get_settings()

celery_app = Celery(
    "ghstars",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["ghstars.tasks.sync_stars"],
)

# Configuration
celery_app.conf.update(
    # Task execution
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task behavior
    task_track_started=True,
    task_time_limit=1800,  # 30 minutes max per full sync
    task_soft_time_limit=1740,

    # Retry behavior
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # One star sync at a time per worker
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
)
