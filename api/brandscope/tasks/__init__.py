"""
Brandscope Celery application.

Tasks:
  - run_analysis   (on demand, one per session trigger)
"""
from celery import Celery
from brandscope.config import get_settings

settings = get_settings()

celery_app = Celery(
    "brandscope",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Import task modules
    include=[
        "brandscope.tasks.analysis",
    ],
)
