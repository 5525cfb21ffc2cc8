import logging
from collections import deque
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from filedrive.core.errors import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from filedrive.db.errors import translate_db_errors
from filedrive.models.file import File
from filedrive.models.folder import Folder
from filedrive.services.storage import BlobStore, BlobStoreError
from filedrive.services.validation import clean_folder_name, require_id, require_name, require_optional_id

logger = logging.getLogger(__name__)

FOLDER_CONFLICT = "A folder with that name already exists here."


def split_path(path: str | None) -> list[str]:
    if not path:
        return []
    return [segment for segment in path.strip("/").split("/") if segment]


def resolve_path(db: Session, user_id: str, segments: Sequence[str]) -> Folder:
    """Walk ``segments`` from the user's root and return the last folder.

    Raises ``NotFoundError`` at the first segment with no matching folder.
    The root itself has no folder row; callers handle an empty path.
    """
    require_id(user_id, "user ID")
    if not segments:
        raise ValidationError("Path must contain at least one folder name.")
    parent_id: str | None = None
    current: Folder | None = None
    with translate_db_errors(db):
        for segment in segments:
            current = db.scalar(
                select(Folder).where(
                    Folder.user_id == user_id,
                    Folder.name == segment,
                    Folder.parent_folder_id == parent_id,
                )
            )
            if current is None:
                raise NotFoundError("Folder not found.")
            parent_id = current.id
    return current


def resolve_folder_id(db: Session, user_id: str, path: str | Sequence[str] | None) -> str | None:
    segments = split_path(path) if path is None or isinstance(path, str) else list(path)
    if not segments:
        return None
    return resolve_path(db, user_id, segments).id


def get_folder(db: Session, folder_id: str, user_id: str) -> Folder:
    require_id(folder_id, "folder ID")
    with translate_db_errors(db):
        folder = db.scalar(select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id))
    if folder is None:
        raise NotFoundError("Folder not found.")
    return folder


def _sibling(db: Session, user_id: str, name: str, parent_folder_id: str | None) -> Folder | None:
    return db.scalar(
        select(Folder).where(
            Folder.user_id == user_id,
            Folder.name == name,
            Folder.parent_folder_id == parent_folder_id,
        )
    )


def create_folder(db: Session, user_id: str, name: str, parent_folder_id: str | None = None) -> Folder:
    require_id(user_id, "user ID")
    require_optional_id(parent_folder_id, "parent folder ID")
    name = clean_folder_name(name)
    if parent_folder_id is not None:
        get_folder(db, parent_folder_id, user_id)

    with translate_db_errors(db, FOLDER_CONFLICT):
        if _sibling(db, user_id, name, parent_folder_id) is not None:
            raise ConflictError(FOLDER_CONFLICT)
        folder = Folder(name=name, user_id=user_id, parent_folder_id=parent_folder_id)
        db.add(folder)
        db.commit()
    db.refresh(folder)
    logger.info("folder_created", extra={"folder_id": folder.id, "user_id": user_id})
    return folder


def list_child_folders(db: Session, user_id: str, parent_folder_id: str | None = None) -> list[Folder]:
    require_id(user_id, "user ID")
    require_optional_id(parent_folder_id, "parent folder ID")
    with translate_db_errors(db):
        return list(
            db.scalars(
                select(Folder)
                .options(selectinload(Folder.owner))
                .where(Folder.user_id == user_id, Folder.parent_folder_id == parent_folder_id)
                .order_by(Folder.name)
            ).all()
        )


def get_folder_by_name(db: Session, user_id: str, name: str, parent_folder_id: str | None = None) -> Folder:
    require_id(user_id, "user ID")
    require_name(name, "Folder name")
    with translate_db_errors(db):
        folder = _sibling(db, user_id, name, parent_folder_id)
    if folder is None:
        raise NotFoundError("Folder not found.")
    return folder


def rename_folder(db: Session, folder_id: str, user_id: str, new_name: str) -> Folder:
    require_id(user_id, "user ID")
    new_name = clean_folder_name(new_name)
    folder = get_folder(db, folder_id, user_id)
    if folder.name == new_name:
        return folder

    with translate_db_errors(db, FOLDER_CONFLICT):
        if _sibling(db, user_id, new_name, folder.parent_folder_id) is not None:
            raise ConflictError(FOLDER_CONFLICT)
        folder.name = new_name
        db.commit()
    db.refresh(folder)
    logger.info("folder_renamed", extra={"folder_id": folder.id, "user_id": user_id})
    return folder


def collect_subtree(db: Session, folder_id: str) -> tuple[list[str], list[str]]:
    """Return ``(folder_ids, blob_ids)`` for a folder and all of its descendants."""
    folder_ids: list[str] = []
    queue: deque[str] = deque([folder_id])
    while queue:
        current = queue.popleft()
        folder_ids.append(current)
        queue.extend(db.scalars(select(Folder.id).where(Folder.parent_folder_id == current)).all())
    blob_ids = list(db.scalars(select(File.cloud_id).where(File.folder_id.in_(folder_ids))).all())
    return folder_ids, blob_ids


def delete_folder(db: Session, blob_store: BlobStore, folder_id: str, user_id: str) -> None:
    """Delete a folder, every descendant folder and every contained file.

    Blobs go first, in one batch. If that fails nothing is removed from the
    relational store and the call can be retried. The folder row is deleted
    last and the store cascades to descendants.
    """
    require_id(user_id, "user ID")
    folder = get_folder(db, folder_id, user_id)
    with translate_db_errors(db):
        folder_ids, blob_ids = collect_subtree(db, folder.id)

    if blob_ids:
        try:
            blob_store.delete_batch(blob_ids)
        except BlobStoreError as exc:
            logger.exception("folder_blob_purge_failed", extra={"folder_id": folder.id, "blob_count": len(blob_ids)})
            raise ExternalServiceError("Could not delete the folder's files from storage. Please try again later.") from exc

    with translate_db_errors(db):
        db.execute(delete(Folder).where(Folder.id == folder.id, Folder.user_id == user_id))
        db.commit()
    logger.info(
        "folder_deleted",
        extra={"folder_id": folder_id, "user_id": user_id, "folders": len(folder_ids), "blobs": len(blob_ids)},
    )


def is_ancestor(db: Session, ancestor_id: str, folder_id: str | None) -> bool:
    current = folder_id
    seen: set[str] = set()
    while current is not None and current not in seen:
        if current == ancestor_id:
            return True
        seen.add(current)
        current = db.scalar(select(Folder.parent_folder_id).where(Folder.id == current))
    return False


def move_folder(db: Session, folder_id: str, user_id: str, new_parent_id: str | None) -> Folder:
    require_id(user_id, "user ID")
    require_optional_id(new_parent_id, "parent folder ID")
    folder = get_folder(db, folder_id, user_id)
    if new_parent_id is not None:
        get_folder(db, new_parent_id, user_id)
    if folder.parent_folder_id == new_parent_id:
        return folder

    with translate_db_errors(db, FOLDER_CONFLICT):
        if is_ancestor(db, folder.id, new_parent_id):
            raise ValidationError("A folder cannot be moved into itself or one of its subfolders.")
        if _sibling(db, user_id, folder.name, new_parent_id) is not None:
            raise ConflictError(FOLDER_CONFLICT)
        folder.parent_folder_id = new_parent_id
        db.commit()
    db.refresh(folder)
    logger.info("folder_moved", extra={"folder_id": folder.id, "user_id": user_id})
    return folder


def folder_breadcrumb(db: Session, folder: Folder | None) -> list[Folder]:
    trail: list[Folder] = []
    current = folder
    while current is not None:
        trail.append(current)
        if current.parent_folder_id is None:
            break
        current = db.get(Folder, current.parent_folder_id)
    return trail[::-1]
