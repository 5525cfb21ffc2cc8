from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from filedrive.core.config import Settings
from filedrive.db.session import get_db
from filedrive.models.user import User
from filedrive.routers.deps import get_app_settings, get_blob_store, get_current_user
from filedrive.schemas.file import UploadResponse
from filedrive.services.folders import resolve_folder_id
from filedrive.services.storage import BlobStore
from filedrive.services.uploads import IncomingFile, check_batch_size, max_upload_bytes, upload_files, validate_upload

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def create_upload(
    files: list[UploadFile] = File(...),
    path: str = Form(""),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_user),
) -> UploadResponse:
    check_batch_size(len(files), settings)
    limit = max_upload_bytes(settings)
    incoming = []
    for upload in files:
        if upload.size is not None:
            validate_upload(upload.filename or "", upload.size, settings)
        # One byte past the limit is enough for validate_upload to reject it.
        data = upload.file.read(limit + 1)
        incoming.append(IncomingFile(filename=upload.filename or "", data=data, content_type=upload.content_type))
    folder_id = resolve_folder_id(db, current_user.id, path)
    count = upload_files(db, blob_store, current_user.id, folder_id, incoming, settings)
    return UploadResponse(count=count)
