import logging
from datetime import timedelta

from filedrive.core.config import get_settings
from filedrive.db.session import Database
from filedrive.services.maintenance import sweep_orphaned_blobs
from filedrive.services.storage import build_blob_store
from filedrive.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="filedrive.workers.tasks.sweep_orphaned_blobs_job")
def sweep_orphaned_blobs_job() -> int:
    settings = get_settings()
    database = Database(settings.database_url, echo=settings.database_echo)
    database.connect()
    db = database.session()
    try:
        return sweep_orphaned_blobs(
            db,
            build_blob_store(settings),
            grace=timedelta(minutes=settings.orphan_sweep_grace_minutes),
        )
    except Exception:
        logger.exception("orphan_sweep_failed")
        raise
    finally:
        db.close()
        database.disconnect()
