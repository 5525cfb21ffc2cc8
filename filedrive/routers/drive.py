from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from filedrive.db.session import get_db
from filedrive.models.folder import Folder
from filedrive.models.user import User
from filedrive.routers.deps import get_blob_store, get_current_user
from filedrive.schemas.drive import DeleteItemRequest, DirectoryListing, MessageResponse, MoveItemRequest, RenameItemRequest
from filedrive.schemas.file import FileRead
from filedrive.schemas.folder import BreadcrumbItem, FolderCreate, FolderRead
from filedrive.services import files as file_service
from filedrive.services import folders as folder_service
from filedrive.services.storage import BlobStore

router = APIRouter(prefix="/files", tags=["files"])


def _listing(db: Session, user: User, path: str) -> DirectoryListing:
    segments = folder_service.split_path(path)
    folder = folder_service.resolve_path(db, user.id, segments) if segments else None
    folder_id = folder.id if folder else None
    folders = folder_service.list_child_folders(db, user.id, folder_id)
    files = file_service.list_files(db, user.id, folder_id)
    breadcrumb = []
    for depth, item in enumerate(folder_service.folder_breadcrumb(db, folder), start=1):
        breadcrumb.append(BreadcrumbItem(name=item.name, path="/".join(segments[:depth])))
    return DirectoryListing(
        path="/".join(segments),
        breadcrumb=breadcrumb,
        folders=[FolderRead.model_validate(item) for item in folders],
        files=[FileRead.model_validate(item) for item in files],
        empty=not folders and not files,
    )


@router.get("", response_model=DirectoryListing)
def list_root(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> DirectoryListing:
    return _listing(db, current_user, "")


@router.get("/{folder_path:path}", response_model=DirectoryListing)
def list_folder(
    folder_path: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> DirectoryListing:
    return _listing(db, current_user, folder_path)


@router.post("/folders", response_model=FolderRead, status_code=status.HTTP_201_CREATED)
def create_folder(
    payload: FolderCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> Folder:
    parent_id = folder_service.resolve_folder_id(db, current_user.id, payload.path)
    return folder_service.create_folder(db, current_user.id, payload.name, parent_id)


@router.patch("/rename-folder", response_model=MessageResponse)
def rename_folder(
    payload: RenameItemRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> MessageResponse:
    parent_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    folder = folder_service.get_folder_by_name(db, current_user.id, payload.old_item_name, parent_id)
    folder_service.rename_folder(db, folder.id, current_user.id, payload.new_item_name)
    return MessageResponse(message="Folder renamed successfully")


@router.patch("/rename-file", response_model=MessageResponse)
def rename_file(
    payload: RenameItemRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> MessageResponse:
    folder_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    file = file_service.get_file_by_name(db, current_user.id, payload.old_item_name, folder_id)
    file_service.rename_file(db, current_user.id, file.id, payload.new_item_name)
    return MessageResponse(message="File renamed successfully")


@router.patch("/move-folder", response_model=MessageResponse)
def move_folder(
    payload: MoveItemRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> MessageResponse:
    parent_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    folder = folder_service.get_folder_by_name(db, current_user.id, payload.item_name, parent_id)
    destination_id = folder_service.resolve_folder_id(db, current_user.id, payload.destination_path)
    folder_service.move_folder(db, folder.id, current_user.id, destination_id)
    return MessageResponse(message="Folder moved successfully")


@router.patch("/move-file", response_model=MessageResponse)
def move_file(
    payload: MoveItemRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
) -> MessageResponse:
    folder_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    file = file_service.get_file_by_name(db, current_user.id, payload.item_name, folder_id)
    destination_id = folder_service.resolve_folder_id(db, current_user.id, payload.destination_path)
    file_service.move_file(db, file.id, current_user.id, destination_id)
    return MessageResponse(message="File moved successfully")


@router.delete("/delete-folder", response_model=MessageResponse)
def delete_folder(
    payload: DeleteItemRequest,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    parent_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    folder = folder_service.get_folder_by_name(db, current_user.id, payload.item_name, parent_id)
    folder_service.delete_folder(db, blob_store, folder.id, current_user.id)
    return MessageResponse(message="Folder deleted successfully")


@router.delete("/delete-file", response_model=MessageResponse)
def delete_file(
    payload: DeleteItemRequest,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    folder_id = folder_service.resolve_folder_id(db, current_user.id, payload.current_path)
    file = file_service.get_file_by_name(db, current_user.id, payload.item_name, folder_id)
    file_service.delete_file(db, blob_store, file.id, current_user.id)
    return MessageResponse(message="File deleted successfully")
