from celery import Celery
from celery.schedules import crontab

from filedrive.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "filedrive",
    broker=settings.get_celery_broker_url(),
    backend=settings.get_celery_result_backend(),
    include=["filedrive.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
)

celery_app.conf.beat_schedule = {
    "orphan-blob-sweep-daily": {
        "task": "filedrive.workers.tasks.sweep_orphaned_blobs_job",
        "schedule": crontab(hour=settings.orphan_sweep_hour, minute=0),
    }
}
