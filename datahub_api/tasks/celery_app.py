"""Celery application running source file imports outside the request."""
from celery import Celery

from datahub_api.core.config import settings

BROKER_URL = settings.REDIS_URL or "redis://localhost:6379/0"

celery_app = Celery(
    "datahub",
    broker=BROKER_URL,
    backend=BROKER_URL,
    include=["datahub_api.tasks.import_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue=settings.IMPORT_QUEUE,
    task_routes={"datahub_api.tasks.import_tasks.*": {"queue": settings.IMPORT_QUEUE}},
    task_track_started=True,
    # An import holds a worker for its whole file; ack only once its rows are committed
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=settings.IMPORT_TASK_TIME_LIMIT,
    task_soft_time_limit=max(settings.IMPORT_TASK_TIME_LIMIT - 60, 1),
)
