"""Celery application for background jobs."""

from celery import Celery
from ..config import settings

celery_app = Celery(
    "uploadflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["uploadflow.tasks.reaper"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)
