"""
Celery application for scheduled maintenance.

The API never enqueues work itself; the worker runs the beat schedule from
celerybeat_schedule.py:

    celery -A tasks worker --beat --loglevel=info
"""
from celery import Celery

from celerybeat_schedule import beat_schedule
from core.config import settings

celery_app = Celery(
    settings.SERVICE_NAME,
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    result_expires=24 * 3600,
    beat_schedule=beat_schedule,
)

from . import cleanup_tasks  # noqa: E402,F401  (registers tasks)

__all__ = ["celery_app"]
