import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePath

from sqlalchemy import select
from sqlalchemy.orm import Session

from filedrive.core.config import Settings, get_settings
from filedrive.core.errors import ConflictError, DriveError, ExternalServiceError, ValidationError
from filedrive.db.errors import translate_db_errors
from filedrive.models.file import File
from filedrive.services.files import create_files
from filedrive.services.folders import get_folder
from filedrive.services.storage import BlobStore, BlobStoreError, BlobUpload, file_format
from filedrive.services.validation import require_id, require_optional_id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IncomingFile:
    filename: str
    data: bytes
    content_type: str | None = None


def max_upload_bytes(settings: Settings) -> int:
    return settings.max_upload_size_mb * 1024 * 1024


def check_batch_size(count: int, settings: Settings) -> None:
    if count == 0:
        raise ValidationError("No files uploaded or invalid upload attempt.")
    if count > settings.max_files_per_upload:
        raise ValidationError(f"At most {settings.max_files_per_upload} files can be uploaded at once.")


def validate_upload(filename: str, size: int, settings: Settings) -> str:
    name = PurePath((filename or "").replace("\\", "/")).name.strip()
    if not name:
        raise ValidationError("Every uploaded file needs a name.")
    if file_format(name) not in settings.allowed_extensions:
        raise ValidationError(f'File "{name}" has an invalid type.')
    if size > max_upload_bytes(settings):
        raise ValidationError(f'File "{name}" exceeds the {settings.max_upload_size_mb} MB limit.')
    return name


def _rollback_blobs(blob_store: BlobStore, uploads: list[BlobUpload]) -> None:
    if not uploads:
        return
    try:
        blob_store.delete_batch([upload.blob_id for upload in uploads])
    except BlobStoreError:
        # Left for the orphan sweep.
        logger.exception("upload_rollback_failed", extra={"blob_ids": [u.blob_id for u in uploads]})


def upload_files(
    db: Session,
    blob_store: BlobStore,
    user_id: str,
    folder_id: str | None,
    files: Sequence[IncomingFile],
    settings: Settings | None = None,
) -> int:
    settings = settings or get_settings()
    require_id(user_id, "user ID")
    require_optional_id(folder_id, "folder ID")
    check_batch_size(len(files), settings)
    if folder_id is not None:
        get_folder(db, folder_id, user_id)

    names = [validate_upload(item.filename, len(item.data), settings) for item in files]
    if len(set(names)) != len(names):
        raise ConflictError("The upload contains two files with the same name.")
    with translate_db_errors(db):
        taken = set(
            db.scalars(
                select(File.filename).where(
                    File.user_id == user_id, File.folder_id == folder_id, File.filename.in_(names)
                )
            ).all()
        )
    if taken:
        raise ConflictError(f"A file named {sorted(taken)[0]!r} already exists here.")

    uploaded: list[BlobUpload] = []
    for name, item in zip(names, files):
        try:
            uploaded.append(blob_store.upload(item.data, name, item.content_type))
        except BlobStoreError as exc:
            _rollback_blobs(blob_store, uploaded)
            raise ExternalServiceError("File storage is unavailable. Please try again later.") from exc

    try:
        return create_files(db, uploaded, user_id, folder_id)
    except DriveError:
        _rollback_blobs(blob_store, uploaded)
        raise
