import logging
from collections.abc import Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, selectinload

from filedrive.core.errors import ConflictError, ExternalServiceError, NotFoundError
from filedrive.db.errors import translate_db_errors
from filedrive.models.file import File
from filedrive.services.folders import get_folder
from filedrive.services.storage import BlobNotFoundError, BlobStore, BlobStoreError, BlobUpload
from filedrive.services.validation import clean_filename, require_id, require_name, require_optional_id

logger = logging.getLogger(__name__)

FILE_CONFLICT = "A file with that name already exists here."

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


def _row(upload: BlobUpload, user_id: str, folder_id: str | None) -> dict:
    return {
        "cloud_id": upload.blob_id,
        "filename": upload.original_name,
        "format": upload.format,
        "size": upload.size,
        "url": upload.url,
        "uploaded_at": upload.created_at,
        "user_id": user_id,
        "folder_id": folder_id,
    }


def _insert_skipping_duplicates(db: Session, rows: list[dict]) -> int:
    insert_fn = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    inserted = 0
    if insert_fn is not None:
        for row in rows:
            result = db.execute(insert_fn(File.__table__).values(**row).on_conflict_do_nothing(index_elements=["cloud_id"]))
            inserted += result.rowcount
        return inserted

    existing = set(db.scalars(select(File.cloud_id).where(File.cloud_id.in_([r["cloud_id"] for r in rows]))).all())
    for row in rows:
        if row["cloud_id"] in existing:
            continue
        db.execute(insert(File.__table__).values(**row))
        existing.add(row["cloud_id"])
        inserted += 1
    return inserted


def create_files(db: Session, uploads: Sequence[BlobUpload], user_id: str, folder_id: str | None = None) -> int:
    """Insert one file row per uploaded blob and return how many were new.

    Rows whose ``cloud_id`` already exists are skipped, so replaying the same
    upload batch is harmless.
    """
    require_id(user_id, "user ID")
    require_optional_id(folder_id, "folder ID")
    if folder_id is not None:
        get_folder(db, folder_id, user_id)
    if not uploads:
        return 0

    rows = [_row(upload, user_id, folder_id) for upload in uploads]
    with translate_db_errors(db, FILE_CONFLICT):
        inserted = _insert_skipping_duplicates(db, rows)
        db.commit()
    logger.info("files_created", extra={"user_id": user_id, "requested": len(rows), "inserted": inserted})
    return inserted


def list_files(db: Session, user_id: str, folder_id: str | None = None) -> list[File]:
    require_id(user_id, "user ID")
    require_optional_id(folder_id, "folder ID")
    with translate_db_errors(db):
        return list(
            db.scalars(
                select(File)
                .options(selectinload(File.owner))
                .where(File.user_id == user_id, File.folder_id == folder_id)
                .order_by(File.filename)
            ).all()
        )


def get_file(db: Session, file_id: str, user_id: str) -> File:
    require_id(file_id, "file ID")
    with translate_db_errors(db):
        file = db.scalar(select(File).where(File.id == file_id, File.user_id == user_id))
    if file is None:
        raise NotFoundError("File not found.")
    return file


def _sibling(db: Session, user_id: str, filename: str, folder_id: str | None) -> File | None:
    return db.scalar(
        select(File).where(File.user_id == user_id, File.filename == filename, File.folder_id == folder_id)
    )


def get_file_by_name(db: Session, user_id: str, filename: str, folder_id: str | None = None) -> File:
    require_id(user_id, "user ID")
    require_name(filename, "Filename")
    with translate_db_errors(db):
        file = _sibling(db, user_id, filename, folder_id)
    if file is None:
        raise NotFoundError("File not found.")
    return file


def rename_file(db: Session, user_id: str, file_id: str, new_filename: str) -> File:
    require_id(user_id, "user ID")
    new_filename = clean_filename(new_filename)
    file = get_file(db, file_id, user_id)
    if file.filename == new_filename:
        return file

    with translate_db_errors(db, FILE_CONFLICT):
        if _sibling(db, user_id, new_filename, file.folder_id) is not None:
            raise ConflictError(FILE_CONFLICT)
        file.filename = new_filename
        db.commit()
    db.refresh(file)
    logger.info("file_renamed", extra={"file_id": file.id, "user_id": user_id})
    return file


def move_file(db: Session, file_id: str, user_id: str, folder_id: str | None) -> File:
    require_id(user_id, "user ID")
    require_optional_id(folder_id, "folder ID")
    file = get_file(db, file_id, user_id)
    if folder_id is not None:
        get_folder(db, folder_id, user_id)
    if file.folder_id == folder_id:
        return file

    with translate_db_errors(db, FILE_CONFLICT):
        if _sibling(db, user_id, file.filename, folder_id) is not None:
            raise ConflictError(FILE_CONFLICT)
        file.folder_id = folder_id
        db.commit()
    db.refresh(file)
    logger.info("file_moved", extra={"file_id": file.id, "user_id": user_id})
    return file


def delete_file(db: Session, blob_store: BlobStore, file_id: str, user_id: str) -> None:
    require_id(user_id, "user ID")
    file = get_file(db, file_id, user_id)
    try:
        blob_store.delete(file.cloud_id)
    except BlobNotFoundError:
        logger.warning("file_blob_already_missing", extra={"file_id": file.id, "blob_id": file.cloud_id})
    except BlobStoreError as exc:
        logger.exception("file_blob_delete_failed", extra={"file_id": file.id, "blob_id": file.cloud_id})
        raise ExternalServiceError("Could not delete the file from storage. Please try again later.") from exc

    with translate_db_errors(db):
        db.execute(delete(File).where(File.id == file.id, File.user_id == user_id))
        db.commit()
    logger.info("file_deleted", extra={"file_id": file_id, "user_id": user_id})
