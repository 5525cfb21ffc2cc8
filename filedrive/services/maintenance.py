import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from filedrive.models.file import File
from filedrive.services.storage import BlobStore

logger = logging.getLogger(__name__)


def find_orphaned_blobs(db: Session, blob_store: BlobStore, grace: timedelta = timedelta(hours=1)) -> list[str]:
    cutoff = datetime.now(timezone.utc) - grace
    candidates = {blob_id for blob_id, modified in blob_store.list_blobs() if modified < cutoff}
    if not candidates:
        return []
    known = set(db.scalars(select(File.cloud_id)).all())
    return sorted(candidates - known)


def sweep_orphaned_blobs(db: Session, blob_store: BlobStore, grace: timedelta = timedelta(hours=1)) -> int:
    """Delete blobs that no file row references.

    These are left behind when a process dies between a blob upload and the
    record insert, or when an upload rollback could not reach the blob store.
    Blobs younger than ``grace`` are skipped so in-flight uploads survive.
    """
    orphans = find_orphaned_blobs(db, blob_store, grace)
    if orphans:
        blob_store.delete_batch(orphans)
    logger.info("orphan_sweep_finished", extra={"deleted": len(orphans)})
    return len(orphans)
