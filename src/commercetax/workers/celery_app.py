from celery import Celery

from commercetax.config import settings

celery_app = Celery(
    "commercetax",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["commercetax.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.timezone,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)
