from celery import Celery

from .config import get_settings

redis_url = get_settings().redis_url

celery_app = Celery(
    "montage",
    broker=redis_url,
    backend=redis_url,
    include=["montage.tasks.rendering"],
)

celery_app.conf.update(
    task_track_started=True,
    task_time_limit=1800,  # 30 minutes hard timeout
    task_soft_time_limit=1500,  # 25 minutes soft timeout
    worker_prefetch_multiplier=1,  # One render per worker process at a time
    task_acks_late=True,  # Redeliver if a worker dies mid-render
    task_serializer="json",
    result_expires=24 * 3600,
    broker_connection_retry_on_startup=True,
)
